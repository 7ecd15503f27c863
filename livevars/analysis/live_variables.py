#!/usr/bin/env python
# -*- coding: utf-8 -*-

import logging

from livevars.ir.values import *
from livevars.ir.adt import OrderedSet
from livevars.ir.printer import SlotTracker, get_value_name, print_inst, print_block_label
from livevars.ir.cfg import print_cfg
from livevars.analysis.gen_kill import GenKillClassifier, is_tracked_value

logger = logging.getLogger(__name__)


class MalformedFunctionError(ValueError):
    pass


class FixpointError(RuntimeError):
    pass


def verify_function(func):
    blocks = set(func.bbs)

    for bb in func.bbs:
        label = bb.value_name or repr(bb)

        if len(bb.insts) == 0:
            raise MalformedFunctionError(f"Basic block {label} is empty.")

        if bb.terminator is None:
            raise MalformedFunctionError(
                f"Basic block {label} has no terminator.")

        seen_non_phi = False
        for inst in bb.insts:
            if inst.block is not bb:
                raise MalformedFunctionError(
                    f"Instruction in {label} belongs to another block.")

            if inst.is_terminator and inst is not bb.insts[-1]:
                raise MalformedFunctionError(
                    f"Terminator in the middle of basic block {label}.")

            if isinstance(inst, PHINode):
                if seen_non_phi:
                    raise MalformedFunctionError(
                        f"PHI node is not at the beginning of basic block {label}.")
            else:
                seen_non_phi = True

        for succ in bb.terminator.successors:
            if not isinstance(succ, BasicBlock) or succ not in blocks:
                raise MalformedFunctionError(
                    f"Basic block {label} branches to a block outside {func.value_name}.")

    for bb in func.bbs:
        preds = bb.predecessors
        for phi in bb.phis:
            for incoming in phi.incoming_blocks:
                if incoming not in preds:
                    raise MalformedFunctionError(
                        f"PHI node in {bb.value_name or repr(bb)} has an incoming block that is not a predecessor.")
            for pred in preds:
                if pred not in phi.incoming_blocks:
                    raise MalformedFunctionError(
                        f"PHI node in {bb.value_name or repr(bb)} has no value for a predecessor.")


def transfer(live_out, gen, kill):
    # Kill first, then gen, so a value both read and defined stays live.
    return live_out.difference(kill).union(gen)


class LivenessResult:
    """Per-block and per-instruction live sets of one function.

    ``live_out(inst)`` is the set live right after ``inst`` and need not contain
    its Gen set; ``live_before(inst)`` is ``(live_out \\ kill) | gen``.
    """

    def __init__(self, func, classifier):
        self.func = func
        self.classifier = classifier
        self.block_live_in = {}
        self.block_live_out = {}
        self.inst_live_in = {}
        self.inst_live_out = {}
        self.passes = 0
        self.history = []

    def gen(self, inst):
        return self.classifier.gen_set(inst)

    def kill(self, inst):
        return self.classifier.kill_set(inst)

    def live_in(self, bb):
        return self.block_live_in.get(bb, OrderedSet())

    def live_out(self, inst_or_block):
        if isinstance(inst_or_block, BasicBlock):
            return self.block_live_out.get(inst_or_block, OrderedSet())
        return self.inst_live_out.get(inst_or_block, OrderedSet())

    def live_before(self, inst):
        return self.inst_live_in.get(inst, OrderedSet())

    def live_through(self, inst):
        return self.live_out(inst).difference(self.kill(inst))

    def is_live_out(self, value, inst):
        return value in self.live_out(inst)

    def dead_definitions(self):
        dead = []
        for bb in self.func.bbs:
            for inst in bb.insts:
                if not inst.produces_value or inst.is_terminator:
                    continue
                if inst not in self.live_out(inst):
                    dead.append(inst)
        return dead

    def snapshot(self):
        return ({bb: frozenset(live) for bb, live in self.block_live_in.items()},
                {inst: frozenset(live) for inst, live in self.inst_live_out.items()})


class LiveVariables:
    """Backward live-variable analysis over the blocks of one function.

    Each block's live-out boundary is the union of what flows in from its
    successors. A phi operand flows only along the edge it is attached to.
    Blocks whose boundary did not change since their last sweep are skipped,
    and full passes repeat until one pass changes nothing.
    """

    def __init__(self, record_history=False):
        self.record_history = record_history

    def run(self, func, seed=None):
        verify_function(func)

        classifier = GenKillClassifier().classify(func)
        result = LivenessResult(func, classifier)

        if seed is not None:
            self.load_seed(result, seed)

        num_values = len(func.args) + len(func.insts)
        max_passes = len(func.bbs) * (num_values + 1) + 2

        blocks = list(reversed(func.bbs))

        changed = len(blocks) > 0
        while changed:
            if result.passes >= max_passes:
                raise FixpointError(
                    f"Liveness of {func.value_name} did not converge in {max_passes} passes.")

            result.passes += 1

            num_changed = 0
            for bb in blocks:
                if self.compute_block(result, bb):
                    num_changed += 1

            logger.debug("pass %d over %s: %d of %d blocks changed",
                         result.passes, func.value_name, num_changed, len(blocks))

            if self.record_history:
                result.history.append(result.snapshot())

            changed = num_changed > 0

        logger.debug("liveness of %s converged after %d passes",
                     func.value_name, result.passes)
        return result

    def load_seed(self, result, seed):
        for bb in result.func.bbs:
            if bb in seed.block_live_out:
                result.block_live_out[bb] = seed.block_live_out[bb].copy()
            if bb in seed.block_live_in:
                result.block_live_in[bb] = seed.block_live_in[bb].copy()

            for inst in bb.insts:
                if inst in seed.inst_live_out:
                    result.inst_live_out[inst] = seed.inst_live_out[inst].copy()
                if inst in seed.inst_live_in:
                    result.inst_live_in[inst] = seed.inst_live_in[inst].copy()

    def edge_live(self, result, pred, succ):
        live = OrderedSet()

        head = succ.first_non_phi
        if head in result.inst_live_in:
            live.update(result.inst_live_in[head])

        phis = succ.phis
        for phi in phis:
            live.discard(phi)

        for phi in phis:
            for value in phi.incoming_values_for(pred):
                if is_tracked_value(value):
                    live.add(value)

        return live

    def compute_block(self, result, bb):
        new_out = OrderedSet()
        for succ in bb.successors:
            new_out.update(self.edge_live(result, bb, succ))

        if bb in result.block_live_out and result.block_live_out[bb] == new_out:
            return False

        result.block_live_out[bb] = new_out

        # Every map entry owns its set.
        live = new_out
        for inst in reversed(bb.insts):
            result.inst_live_out[inst] = live.copy()
            live = transfer(live, result.gen(inst), result.kill(inst))
            result.inst_live_in[inst] = live

        result.block_live_in[bb] = live.copy()

        return True


def compute_live_variables(func, seed=None, record_history=False):
    return LiveVariables(record_history=record_history).run(func, seed)


def print_value_set(values, slot_id_map):
    return "{" + ", ".join([get_value_name(value, slot_id_map) for value in values]) + "}"


def print_liveness(func, result):
    slot_id_map = SlotTracker()
    slot_id_map.track(func)

    lines = []
    for bb in func.bbs:
        lines.append(f"BB: {print_block_label(bb, slot_id_map)}")
        for inst in bb.insts:
            lines.append(print_value_set(result.live_out(inst), slot_id_map))
            lines.append(print_inst(inst, slot_id_map))
        lines.append(print_value_set(result.live_in(bb), slot_id_map))

    return "\n".join(lines)


def print_liveness_cfg(func, result, out_dir, font_size=10, font_name="Ricty Diminished"):
    return print_cfg(func, out_dir, live_ins=result.block_live_in,
                     font_size=font_size, font_name=font_name)


from livevars.passes import FunctionPass


class LiveVariablesPass(FunctionPass):
    def __init__(self, record_history=False, print_result=False):
        super().__init__()
        self.record_history = record_history
        self.print_result = print_result

    def initialize(self):
        self.results = {}

    def finalize(self):
        if not self.print_result:
            return

        for func, result in self.results.items():
            print(print_liveness(func, result))

    def process_function(self, func):
        if func.is_declaration:
            return

        analysis = LiveVariables(record_history=self.record_history)
        self.results[func] = analysis.run(func)
