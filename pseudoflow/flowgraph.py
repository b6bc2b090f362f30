"""
pseudoflow.flowgraph
====================

Builds the control-flow diagram of the main body.

The graph is produced in one forward pass over the statement stream.  Open
constructs are tracked on a stack of transient contexts (one per open
``si`` and one per open loop); the contexts never outlive the pass.

Public API
----------
    FlowNode          - a node: id, label and shape
    FlowEdge          - a directed edge, optionally labelled ``si``/``no``
    FlowGraph         - nodes + edges + queries + textual rendering
    build_flow_graph  - build the graph of a statement sequence
    build_flow_steps  - the linear step listing of a statement sequence

Typical usage::

    from pseudoflow.flowgraph import build_flow_graph

    graph = build_flow_graph(model.main_body)
    print(graph.to_mermaid())

Implementation notes
--------------------
* Pre-test loops (``mientras``, ``para``) get a decision node and an
  *after* node when opened.  The first body node hangs off the decision
  with a ``si`` edge; the closer adds the back-edge and the ``no`` exit.
* ``repetir`` only creates its *after* node; its decision node appears at
  ``hasta(...)``, with a ``no`` back-edge to the first body node (the loop
  entry) and a ``si`` edge out.
* ``si`` creates a decision node and a join node.  Empty branches connect
  the decision straight to the join.
* Constructs still open at the end are closed implicitly, so every node but
  the end node keeps at least one outgoing edge.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from pseudoflow.expressions import sanitize_label
from pseudoflow.grammar import StatementKind
from pseudoflow.model import Statement

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Nodes and edges
# ---------------------------------------------------------------------------


class NodeShape(enum.Enum):
    TERMINAL = "terminal"
    DECISION = "decision"
    PROCESS = "process"


class EdgeKind(enum.Enum):
    """Classification of a flow edge."""

    FALL_THROUGH = "fall-through"
    YES = "si"
    NO = "no"

    @property
    def label(self) -> Optional[str]:
        if self is EdgeKind.FALL_THROUGH:
            return None
        return self.value


@dataclass(frozen=True)
class FlowNode:
    id: str
    label: str
    shape: NodeShape = NodeShape.PROCESS

    def render(self) -> str:
        safe = sanitize_label(self.label)
        if self.shape is NodeShape.DECISION:
            return f'{self.id}{{"{safe}"}}'
        if self.shape is NodeShape.TERMINAL:
            return f'{self.id}(["{safe}"])'
        return f'{self.id}["{safe}"]'


@dataclass(frozen=True)
class FlowEdge:
    source: str
    target: str
    kind: EdgeKind = EdgeKind.FALL_THROUGH
    back_edge: bool = False

    @property
    def label(self) -> Optional[str]:
        return self.kind.label

    def render(self) -> str:
        if self.label:
            return f"{self.source} -- {self.label} --> {self.target}"
        return f"{self.source} --> {self.target}"


# ---------------------------------------------------------------------------
# FlowGraph
# ---------------------------------------------------------------------------


class FlowGraph:
    """Directed graph of one statement sequence.

    Attributes
    ----------
    nodes : list[FlowNode]
        In creation order; ``nodes[0]`` is the start node.
    edges : list[FlowEdge]
        In creation order.
    start, end : FlowNode
        The synthetic ``Inicio`` and ``Fin`` nodes.
    """

    def __init__(self) -> None:
        self.nodes: List[FlowNode] = []
        self.edges: List[FlowEdge] = []
        self._by_id: Dict[str, FlowNode] = {}
        self._successors: Dict[str, List[FlowEdge]] = {}
        self.start: Optional[FlowNode] = None
        self.end: Optional[FlowNode] = None

    # ----- graph mutation ---------------------------------------------------

    def add_node(self, label: str, shape: NodeShape = NodeShape.PROCESS) -> FlowNode:
        node = FlowNode(f"N{len(self.nodes)}", label, shape)
        self.nodes.append(node)
        self._by_id[node.id] = node
        self._successors[node.id] = []
        return node

    def add_edge(
        self,
        source: FlowNode,
        target: FlowNode,
        kind: EdgeKind = EdgeKind.FALL_THROUGH,
        back_edge: bool = False,
    ) -> FlowEdge:
        edge = FlowEdge(source.id, target.id, kind, back_edge)
        self.edges.append(edge)
        self._successors[source.id].append(edge)
        return edge

    # ----- queries ----------------------------------------------------------

    def node(self, node_id: str) -> FlowNode:
        return self._by_id[node_id]

    def successors_of(self, node: FlowNode) -> List[FlowNode]:
        return [self._by_id[e.target] for e in self._successors[node.id]]

    def out_edges(self, node: FlowNode) -> List[FlowEdge]:
        return list(self._successors[node.id])

    def reachable_from(self, start: FlowNode) -> Set[str]:
        """Return the ids of the nodes reachable from *start*."""
        visited: Set[str] = set()
        worklist = [start.id]
        while worklist:
            nid = worklist.pop()
            if nid in visited:
                continue
            visited.add(nid)
            for e in self._successors[nid]:
                worklist.append(e.target)
        return visited

    def back_edges(self) -> List[FlowEdge]:
        return [e for e in self.edges if e.back_edge]

    def decisions(self) -> List[FlowNode]:
        return [n for n in self.nodes if n.shape is NodeShape.DECISION]

    # ----- serialisation helpers --------------------------------------------

    def to_mermaid(self) -> str:
        """Render as ``flowchart TD`` followed by node and edge lines."""
        lines = ["flowchart TD"]
        lines.extend(n.render() for n in self.nodes)
        lines.extend(e.render() for e in self.edges)
        return "\n".join(lines)

    def to_json(self) -> Dict[str, list]:
        return {
            "nodes": [
                {"id": n.id, "label": n.label, "shape": n.shape.value} for n in self.nodes
            ],
            "edges": [
                {
                    "from": e.source,
                    "to": e.target,
                    "label": e.label,
                    "back_edge": e.back_edge,
                }
                for e in self.edges
            ],
        }

    def __repr__(self) -> str:
        return f"FlowGraph(nodes={len(self.nodes)}, edges={len(self.edges)})"


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


@dataclass
class _BranchContext:
    decision: FlowNode
    join: FlowNode
    in_else: bool = False
    awaiting: bool = True
    then_last: Optional[FlowNode] = None
    else_last: Optional[FlowNode] = None

    @property
    def entry_kind(self) -> EdgeKind:
        return EdgeKind.NO if self.in_else else EdgeKind.YES

    def record(self, node: FlowNode) -> None:
        if self.in_else:
            self.else_last = node
        else:
            self.then_last = node


@dataclass
class _LoopContext:
    kind: StatementKind
    after: FlowNode
    decision: Optional[FlowNode] = None
    awaiting: bool = False
    entry: Optional[FlowNode] = None

    @property
    def entry_kind(self) -> EdgeKind:
        return EdgeKind.YES


_Context = Union[_BranchContext, _LoopContext]

_LOOP_CLOSERS = {
    StatementKind.END_WHILE: StatementKind.WHILE,
    StatementKind.END_FOR: StatementKind.FOR,
    StatementKind.UNTIL: StatementKind.REPEAT,
}

_AFTER_LABELS = {
    StatementKind.WHILE: "Fin mientras",
    StatementKind.FOR: "Fin para",
    StatementKind.REPEAT: "Fin repetir",
}


def _node_label(stmt: Statement) -> str:
    shape = stmt.shape
    kind = stmt.kind
    if kind is StatementKind.READ:
        return f"Leer {shape.text}"
    if kind is StatementKind.WRITE:
        return f"Escribir {shape.text}"
    if kind is StatementKind.RETURN:
        return "Volver"
    if kind is StatementKind.CALL:
        return f"Llamar {stmt.text}"
    return stmt.text


class _FlowGraphBuilder:
    """Single forward pass turning a statement sequence into a FlowGraph."""

    def __init__(self) -> None:
        self.graph = FlowGraph()
        self.contexts: List[_Context] = []
        self.current: FlowNode = self.graph.add_node("Inicio", NodeShape.TERMINAL)
        self.graph.start = self.current

    def build(self, body: Iterable[Statement]) -> FlowGraph:
        for stmt in body:
            self._visit(stmt)
        while self.contexts:
            self._close_implicitly(self.contexts[-1])
        end = self.graph.add_node("Fin", NodeShape.TERMINAL)
        self.graph.add_edge(self.current, end)
        self.graph.end = end
        return self.graph

    # ----- wiring -----------------------------------------------------------

    def _connect(self, node: FlowNode) -> None:
        """Chain *node* after the current position.

        A context awaiting its first node (a fresh loop body or branch)
        supplies the source and the edge label instead of ``current``.
        """
        pending = next((c for c in reversed(self.contexts) if c.awaiting), None)
        if pending is not None:
            self.graph.add_edge(pending.decision, node, pending.entry_kind)
            pending.awaiting = False
        else:
            self.graph.add_edge(self.current, node)

        for ctx in self.contexts:
            if isinstance(ctx, _LoopContext) and ctx.kind is StatementKind.REPEAT and ctx.entry is None:
                ctx.entry = node
        self._settle(node)

    def _settle(self, node: FlowNode) -> None:
        """Make *node* the current position and the tail of an enclosing branch."""
        self.current = node
        if self.contexts and isinstance(self.contexts[-1], _BranchContext):
            self.contexts[-1].record(node)

    def _innermost(self, wanted: type, kind: Optional[StatementKind] = None) -> Optional[int]:
        for index in range(len(self.contexts) - 1, -1, -1):
            ctx = self.contexts[index]
            if isinstance(ctx, wanted) and (kind is None or ctx.kind is kind):
                return index
        return None

    def _unwind_to(self, index: int) -> _Context:
        """Close every context above *index*; return the one at *index*."""
        while len(self.contexts) - 1 > index:
            self._close_implicitly(self.contexts[-1])
        return self.contexts[-1]

    # ----- statements -------------------------------------------------------

    def _visit(self, stmt: Statement) -> None:
        kind = stmt.kind
        shape = stmt.shape

        if kind in (StatementKind.COMMENT, StatementKind.THEN):
            return

        if kind in (StatementKind.WHILE, StatementKind.FOR):
            if kind is StatementKind.WHILE:
                label = f"Mientras ({shape.condition})"
            else:
                label = f"Para {shape.name} desde {shape.start} hasta {shape.end}"
            decision = self.graph.add_node(label, NodeShape.DECISION)
            after = self.graph.add_node(_AFTER_LABELS[kind], NodeShape.TERMINAL)
            self._connect(decision)
            self.contexts.append(_LoopContext(kind, after, decision, awaiting=True))
            self.current = decision
            return

        if kind is StatementKind.REPEAT:
            after = self.graph.add_node(_AFTER_LABELS[kind], NodeShape.TERMINAL)
            self.contexts.append(_LoopContext(kind, after))
            return

        if kind in _LOOP_CLOSERS:
            index = self._innermost(_LoopContext, _LOOP_CLOSERS[kind])
            if index is None:
                logger.debug("line %d: closer without open loop ignored", stmt.line)
                return
            loop = self._unwind_to(index)
            if kind is StatementKind.UNTIL:
                self._close_repeat(loop, f"Hasta ({shape.condition})")
            else:
                self._close_pretest(loop)
            return

        if kind is StatementKind.IF:
            decision = self.graph.add_node(f"Si {shape.condition}", NodeShape.DECISION)
            join = self.graph.add_node("Fin si", NodeShape.TERMINAL)
            self._connect(decision)
            self.contexts.append(_BranchContext(decision, join))
            self.current = decision
            return

        if kind is StatementKind.ELSE:
            index = self._innermost(_BranchContext)
            if index is None:
                return
            branch = self._unwind_to(index)
            branch.in_else = True
            branch.awaiting = True
            self.current = branch.decision
            return

        if kind is StatementKind.END_IF:
            index = self._innermost(_BranchContext)
            if index is None:
                return
            self._close_branch(self._unwind_to(index))
            return

        self._connect(self.graph.add_node(_node_label(stmt)))

    # ----- closing constructs -----------------------------------------------

    def _close_pretest(self, loop: _LoopContext) -> None:
        self.contexts.pop()
        if loop.awaiting:
            self.graph.add_edge(loop.decision, loop.decision, EdgeKind.YES, back_edge=True)
        else:
            self.graph.add_edge(self.current, loop.decision, back_edge=True)
        self.graph.add_edge(loop.decision, loop.after, EdgeKind.NO)
        self._settle(loop.after)

    def _close_repeat(self, loop: _LoopContext, label: str) -> None:
        decision = self.graph.add_node(label, NodeShape.DECISION)
        self._connect(decision)
        self.contexts.pop()
        self.graph.add_edge(decision, loop.entry or decision, EdgeKind.NO, back_edge=True)
        self.graph.add_edge(decision, loop.after, EdgeKind.YES)
        self._settle(loop.after)

    def _close_branch(self, branch: _BranchContext) -> None:
        self.contexts.pop()
        if branch.then_last is not None:
            self.graph.add_edge(branch.then_last, branch.join)
        else:
            self.graph.add_edge(branch.decision, branch.join, EdgeKind.YES)
        if branch.else_last is not None:
            self.graph.add_edge(branch.else_last, branch.join)
        else:
            self.graph.add_edge(branch.decision, branch.join, EdgeKind.NO)
        self._settle(branch.join)

    def _close_implicitly(self, ctx: _Context) -> None:
        if isinstance(ctx, _BranchContext):
            self._close_branch(ctx)
        elif ctx.kind is StatementKind.REPEAT:
            self.contexts.pop()
            self.graph.add_edge(self.current, ctx.after)
            self._settle(ctx.after)
        else:
            self._close_pretest(ctx)


def build_flow_graph(body: Iterable[Statement]) -> FlowGraph:
    """Build the flow graph of *body* (normally ``ProgramModel.main_body``)."""
    graph = _FlowGraphBuilder().build(body)
    logger.debug("flow graph: %r", graph)
    return graph


# ---------------------------------------------------------------------------
# Linear step listing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FlowStep:
    """One entry of the step listing; loop closers point at their opener."""

    label: str
    loop_back_to: Optional[int] = None


_STEP_LABELS = {
    StatementKind.THEN: "Entonces",
    StatementKind.ELSE: "Sino",
    StatementKind.END_IF: "Fin si",
    StatementKind.REPEAT: "Repetir",
}


def build_flow_steps(body: Sequence[Statement]) -> List[FlowStep]:
    steps: List[FlowStep] = [FlowStep("Inicio")]
    open_loops: List[tuple] = []

    def pop_loop(kind: StatementKind) -> Optional[int]:
        for index in range(len(open_loops) - 1, -1, -1):
            if open_loops[index][0] is kind:
                return open_loops.pop(index)[1]
        return None

    for stmt in body:
        kind = stmt.kind
        shape = stmt.shape
        if kind is StatementKind.COMMENT:
            continue
        if kind is StatementKind.WHILE:
            steps.append(FlowStep(f"Mientras ({shape.condition})"))
        elif kind is StatementKind.FOR:
            steps.append(FlowStep(f"Para {shape.name} desde {shape.start} hasta {shape.end}"))
        elif kind is StatementKind.END_WHILE:
            steps.append(FlowStep("Fin mientras", pop_loop(StatementKind.WHILE)))
        elif kind is StatementKind.END_FOR:
            steps.append(FlowStep("Fin para", pop_loop(StatementKind.FOR)))
        elif kind is StatementKind.UNTIL:
            steps.append(FlowStep(f"Hasta ({shape.condition})", pop_loop(StatementKind.REPEAT)))
        elif kind is StatementKind.IF:
            steps.append(FlowStep(f"Si {shape.condition}"))
        elif kind in _STEP_LABELS:
            steps.append(FlowStep(_STEP_LABELS[kind]))
        else:
            steps.append(FlowStep(_node_label(stmt)))

        if kind in (StatementKind.WHILE, StatementKind.FOR, StatementKind.REPEAT):
            open_loops.append((kind, len(steps) - 1))

    steps.append(FlowStep("Fin"))
    return steps
