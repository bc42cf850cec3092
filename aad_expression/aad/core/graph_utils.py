"""
Graph utilities.
Print and analyse the structure of an expression DAG.
"""

import numpy as np
from typing import Dict, List, Union
from collections import Counter

from .expression import Expression
from .node import Node
from .tape import Tape


def _graph_nodes(graph: Union[Expression, Tape]) -> List[Node]:
    if isinstance(graph, Expression):
        return list(graph.nodes())
    if isinstance(graph, Tape):
        return list(graph.nodes)
    raise TypeError(f"expected an Expression or Tape, got {type(graph)}")


def get_graph_stats(graph: Union[Expression, Tape]) -> Dict:
    """
    Collect graph statistics (no printing).

    Fan-in is a node's operand count; fan-out counts consumers that are
    themselves part of `graph`.

    Returns:
        dict with nodes, edges, leaves, max/avg fan-in, max/avg fan-out,
        and an operator histogram.
    """
    nodes = _graph_nodes(graph)
    if not nodes:
        return {
            'nodes': 0,
            'edges': 0,
            'leaves': 0,
            'max_fan_in': 0,
            'avg_fan_in': 0.0,
            'max_fan_out': 0,
            'avg_fan_out': 0.0,
            'operations': {}
        }

    members = set(nodes)
    n_nodes = len(nodes)
    fan_ins = [len(v.children) for v in nodes]
    fan_outs = [sum(1 for p in v.parents if p in members) for v in nodes]
    op_counter = Counter(v.op.value for v in nodes)

    return {
        'nodes': n_nodes,
        'edges': sum(fan_ins),
        'leaves': sum(1 for v in nodes if v.is_leaf()),
        'max_fan_in': max(fan_ins),
        'avg_fan_in': float(np.mean(fan_ins)),
        'max_fan_out': max(fan_outs),
        'avg_fan_out': float(np.mean(fan_outs)),
        'operations': dict(op_counter)
    }


def print_graph_summary(graph: Union[Expression, Tape], detailed: bool = False) -> Dict:
    """
    Print a summary of the graph.

    Args:
        graph: Expression or Tape
        detailed: also list every node (graphs of up to 100 nodes)

    Returns:
        The statistics dict from get_graph_stats.
    """
    stats = get_graph_stats(graph)
    if stats['nodes'] == 0:
        print("Empty computation graph")
        return stats

    print("\n" + "="*70)
    print("EXPRESSION GRAPH SUMMARY")
    print("="*70)
    print(f"Total nodes:        {stats['nodes']:,}")
    print(f"Total edges:        {stats['edges']:,}")
    print(f"Leaves:             {stats['leaves']:,}")
    print(f"Max fan-in:         {stats['max_fan_in']}")
    print(f"Avg fan-in:         {stats['avg_fan_in']:.2f}")
    print(f"Max fan-out:        {stats['max_fan_out']}")
    print(f"Avg fan-out:        {stats['avg_fan_out']:.2f}")
    print()
    print("Operation breakdown:")
    for op_type, count in Counter(stats['operations']).most_common(10):
        pct = 100.0 * count / stats['nodes']
        print(f"  {op_type:12s}: {count:6,} ({pct:5.1f}%)")

    if detailed and stats['nodes'] <= 100:
        print_computation_graph(graph, max_nodes=100)
    else:
        print("="*70 + "\n")

    return stats


def _tape_ref(v: Node) -> str:
    return "tape[-]" if v.index is None else f"tape[{v.index}]"


def _label(v: Node, position: Dict[Node, int]) -> str:
    if v.name:
        return v.name
    return f"Node{position[v]}" if v in position else _tape_ref(v)


def print_computation_graph(graph: Union[Expression, Tape], max_nodes: int = 20) -> None:
    """
    Print one line per node: operator, value shape, tape index and operands.

    Args:
        graph: Expression or Tape
        max_nodes: print at most this many nodes
    """
    print("\n" + "="*70)
    print("EXPRESSION GRAPH STRUCTURE")
    print("="*70)

    nodes = _graph_nodes(graph)
    if not nodes:
        print("Empty graph")
        return

    position = {v: i for i, v in enumerate(nodes)}
    for i, v in enumerate(nodes[:max_nodes]):
        shape = "unset" if v.value is None else "x".join(str(d) for d in v.value.shape)
        if v.children:
            operands = ", ".join(_label(c, position) for c in v.children)
            print(f"Node {i:4d}: {v.op.value:12s} ({shape:>9s}) {_tape_ref(v)} <- [{operands}]")
        else:
            print(f"Node {i:4d}: {v.op.value:12s} ({shape:>9s}) {_tape_ref(v)} [leaf/input] {v.name or ''}")

    if len(nodes) > max_nodes:
        print(f"... ({len(nodes) - max_nodes} more nodes)")

    print("="*70 + "\n")


def analyze_graph_complexity(graph: Union[Expression, Tape]) -> str:
    """
    Text report on graph size and the most common operators.
    """
    stats = get_graph_stats(graph)

    if stats['nodes'] == 0:
        return "Empty computation graph"

    report = []
    report.append("Graph Complexity Analysis:")
    report.append(f"  Total operations: {stats['nodes'] - stats['leaves']:,}")
    report.append(f"  Total connections: {stats['edges']:,}")
    report.append(f"  Average branching: {stats['avg_fan_out']:.2f}")

    if stats['nodes'] < 1000:
        complexity = "Low"
    elif stats['nodes'] < 10000:
        complexity = "Medium"
    else:
        complexity = "High"

    report.append(f"  Complexity level: {complexity}")

    if stats['operations']:
        top_ops = sorted(stats['operations'].items(), key=lambda x: x[1], reverse=True)[:3]
        report.append("  Top operations:")
        for op, count in top_ops:
            pct = 100.0 * count / stats['nodes']
            report.append(f"    - {op}: {pct:.1f}%")

    return "\n".join(report)
