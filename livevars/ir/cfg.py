#!/usr/bin/env python
# -*- coding: utf-8 -*-

import os
import html
from enum import Enum
import pygraphviz as pgv

from livevars.ir.values import *
from livevars.ir.printer import print_inst, print_block_label, get_value_name, SlotTracker


class CFGNodeEdgeType(Enum):
    COND_THEN = "then"
    COND_ELSE = "else"
    JUMP = "jump"
    CASE = "case"
    DEFAULT = "default"
    NORMAL_DEST = "normal"
    UNWIND_DEST = "unwind"
    INDIRECT = "indirect"


class CFGNodeEdge:
    def __init__(self, node_from, node_to, edge_type):
        self.node_from = node_from
        self.node_to = node_to
        self.edge_type = edge_type


def get_successor_edges(block):
    term = block.terminator

    if isinstance(term, BranchInst):
        return [
            CFGNodeEdge(block, term.then_target, CFGNodeEdgeType.COND_THEN),
            CFGNodeEdge(block, term.else_target, CFGNodeEdgeType.COND_ELSE)
        ]

    if isinstance(term, JumpInst):
        return [CFGNodeEdge(block, term.goto_target, CFGNodeEdgeType.JUMP)]

    if isinstance(term, SwitchInst):
        return [CFGNodeEdge(block, term.default, CFGNodeEdgeType.DEFAULT)] + [
            CFGNodeEdge(block, dest, CFGNodeEdgeType.CASE) for dest in term.case_dests]

    if isinstance(term, InvokeInst):
        return [
            CFGNodeEdge(block, term.normal_dest, CFGNodeEdgeType.NORMAL_DEST),
            CFGNodeEdge(block, term.unwind_dest, CFGNodeEdgeType.UNWIND_DEST)
        ]

    if isinstance(term, IndirectBrInst):
        return [CFGNodeEdge(block, dest, CFGNodeEdgeType.INDIRECT) for dest in term.dests]

    return []


def cfg_traverse_depth(block, action, visited):
    if block in visited:
        return

    visited.add(block)

    action(block)

    for succ in block.successors:
        cfg_traverse_depth(succ, action, visited)


def reachable_blocks(func):
    blocks = []
    if func.entry_block is None:
        return blocks

    cfg_traverse_depth(func.entry_block, blocks.append, set())
    return blocks


def gen_block_label(block, slot_id_map, notes=None):
    rows = [
        f'<tr><td align="left"><b>{html.escape(print_block_label(block, slot_id_map))}</b></td></tr>']

    rows.extend([
        f'<tr><td align="left">{html.escape(print_inst(inst, slot_id_map))}</td></tr>' for inst in block.insts])

    if notes is not None:
        names = ", ".join([get_value_name(value, slot_id_map) for value in notes])
        rows.append(
            f'<tr><td align="left">live-in: {{{html.escape(names)}}}</td></tr>')

    text = "".join(rows)
    return f'<<table border="0" cellborder="1" cellspacing="0">{text}</table>>'


def gen_edge_label(edge):
    if edge.edge_type == CFGNodeEdgeType.JUMP:
        return ""
    return edge.edge_type.value


def build_cfg_graph(func, live_ins=None, font_size=10, font_name="Ricty Diminished"):
    g = pgv.AGraph(directed=True, name=func.name)

    slot_id_map = SlotTracker()
    slot_id_map.track(func)

    blocks = reachable_blocks(func)

    for block in blocks:
        notes = None if live_ins is None else live_ins.get(block, ())
        g.add_node(slot_id_map[block], label=gen_block_label(block, slot_id_map, notes),
                   shape="plaintext", fontsize=font_size, fontname=font_name)

    for block in blocks:
        for edge in get_successor_edges(block):
            g.add_edge(slot_id_map[edge.node_from], slot_id_map[edge.node_to],
                       label=gen_edge_label(edge), fontsize=font_size, fontname=font_name)

    return g


def print_cfg(func, out_dir, live_ins=None, font_size=10, font_name="Ricty Diminished"):
    g = build_cfg_graph(func, live_ins, font_size, font_name)

    path = os.path.join(out_dir, f'{func.name}.png')
    g.draw(path, prog='dot')
    return path
