# dep_scanner/graph.py
"""
Static HTML dependency graph. Nodes are coloured by the worst severity found
for the dependency. Only declared dependencies are known, so there are no
edges; the page still uses a force layout so nodes spread out legibly.
"""
import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from .models import CRITICAL, HIGH, LOW, MEDIUM, Coordinate, Vulnerability, max_severity
from .reporting import write_text
from .version import check_stability

logger = logging.getLogger(__name__)

GRAPH_FILENAME = "dependency-graph.html"
D3_SCRIPT_URL = "https://d3js.org/d3.v7.min.js"

SEVERITY_COLORS = {
    None: "#28a745",
    LOW: "#28a745",
    MEDIUM: "#ffc107",
    HIGH: "#fd7e14",
    CRITICAL: "#dc3545",
}


@dataclass(frozen=True)
class GraphNode:
    id: str
    version: str
    is_direct: bool
    max_severity: Optional[str] = None
    stability: str = "UNKNOWN"

    @property
    def color(self) -> str:
        return SEVERITY_COLORS.get(self.max_severity, SEVERITY_COLORS[None])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "version": self.version,
            "directDependency": self.is_direct,
            "maxSeverity": self.max_severity,
            "stability": self.stability,
            "color": self.color,
        }


@dataclass
class DependencyGraph:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[dict] = field(default_factory=list)

    @classmethod
    def from_dependencies(cls, dependencies: Iterable[Coordinate],
                          vulnerabilities: Iterable[Vulnerability]) -> "DependencyGraph":
        severities = defaultdict(list)
        for vuln in vulnerabilities:
            severities[vuln.dependency.key].append(vuln.severity)

        # The same group:artifact declared with several versions collapses into one node
        grouped = defaultdict(list)
        for coordinate in dependencies:
            grouped[coordinate.key].append(coordinate)

        nodes = []
        for key in sorted(grouped):
            coordinates = sorted(grouped[key], key=Coordinate.sort_key)
            versions = sorted({c.version for c in coordinates})
            nodes.append(GraphNode(
                id=key,
                version=", ".join(versions),
                is_direct=any(c.is_direct for c in coordinates),
                max_severity=max_severity(severities.get(key, [])),
                stability=check_stability(coordinates[0].version),
            ))
        return cls(nodes=nodes)

    def node(self, node_id: str) -> Optional[GraphNode]:
        return next((n for n in self.nodes if n.id == node_id), None)

    def to_dict(self) -> dict:
        return {"nodes": [n.to_dict() for n in self.nodes], "edges": list(self.edges)}


def graph_json_for_script(graph: DependencyGraph) -> str:
    """JSON safe to inline in a <script> element."""
    return json.dumps(graph.to_dict(), indent=2).replace("</", "<\\/")


GRAPH_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>Dependency Graph</title>
<script src="__D3_URL__"></script>
<style>
body { font-family: sans-serif; margin: 0; background-color: #f4f7f6; }
h1 { margin: 15px 20px; color: #333; }
#graph { width: 100%; height: 85vh; }
.legend span { display: inline-block; margin: 0 10px 10px 20px; }
.legend i { display: inline-block; width: 12px; height: 12px; border-radius: 6px; margin-right: 4px; }
.tooltip { position: absolute; background: #fff; border: 1px solid #ccc; padding: 6px 10px; font-size: 0.85em; pointer-events: none; opacity: 0; }
text { font-size: 11px; fill: #333; }
</style>
</head>
<body>
<h1>Dependency Graph</h1>
<div class="legend">
<span><i style="background:#dc3545"></i>Critical</span>
<span><i style="background:#fd7e14"></i>High</span>
<span><i style="background:#ffc107"></i>Medium</span>
<span><i style="background:#28a745"></i>Low / none</span>
</div>
<svg id="graph"></svg>
<div class="tooltip" id="tooltip"></div>
<script>
const graph = __GRAPH_JSON__;
const svg = d3.select("#graph");
const width = svg.node().clientWidth || 960;
const height = svg.node().clientHeight || 600;
const tooltip = d3.select("#tooltip");
const esc = s => String(s).replace(/[&<>"']/g, c => ({'&': '&amp;', '<': '&lt;', '>': '&gt;', '"': '&quot;', "'": '&#39;'}[c]));

const simulation = d3.forceSimulation(graph.nodes)
  .force("link", d3.forceLink(graph.edges).id(d => d.id))
  .force("charge", d3.forceManyBody().strength(-120))
  .force("center", d3.forceCenter(width / 2, height / 2))
  .force("collide", d3.forceCollide(30));

const link = svg.append("g").selectAll("line").data(graph.edges).join("line")
  .attr("stroke", "#999");

const node = svg.append("g").selectAll("g").data(graph.nodes).join("g")
  .call(d3.drag()
    .on("start", (event, d) => { if (!event.active) simulation.alphaTarget(0.3).restart(); d.fx = d.x; d.fy = d.y; })
    .on("drag", (event, d) => { d.fx = event.x; d.fy = event.y; })
    .on("end", (event, d) => { if (!event.active) simulation.alphaTarget(0); d.fx = null; d.fy = null; }));

node.append("circle")
  .attr("r", d => d.directDependency ? 10 : 7)
  .attr("fill", d => d.color)
  .attr("stroke", "#333");

node.append("text").attr("dx", 12).attr("dy", 4).text(d => d.id);

node.on("mouseover", (event, d) => {
    tooltip.style("opacity", 1).html(
      "<strong>" + esc(d.id) + "</strong><br>Version: " + esc(d.version) +
      "<br>Severity: " + esc(d.maxSeverity || "none") + "<br>Stability: " + esc(d.stability));
  })
  .on("mousemove", event => tooltip.style("left", (event.pageX + 10) + "px").style("top", (event.pageY + 10) + "px"))
  .on("mouseout", () => tooltip.style("opacity", 0));

simulation.on("tick", () => {
  link.attr("x1", d => d.source.x).attr("y1", d => d.source.y)
      .attr("x2", d => d.target.x).attr("y2", d => d.target.y);
  node.attr("transform", d => "translate(" + d.x + "," + d.y + ")");
});
</script>
</body>
</html>
"""


def render_graph_page(graph: DependencyGraph) -> str:
    return (GRAPH_TEMPLATE
            .replace("__D3_URL__", D3_SCRIPT_URL)
            .replace("__GRAPH_JSON__", graph_json_for_script(graph)))


class GraphEmitter:
    name = "dependency graph"
    filename = GRAPH_FILENAME

    def emit(self, dependencies, vulnerabilities, output_dir) -> Path:
        graph = DependencyGraph.from_dependencies(dependencies, vulnerabilities)
        logger.debug(f"Dependency graph has {len(graph.nodes)} nodes")
        return write_text(Path(output_dir) / self.filename, render_graph_page(graph))
