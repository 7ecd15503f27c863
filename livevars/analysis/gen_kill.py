#!/usr/bin/env python
# -*- coding: utf-8 -*-

import logging

from livevars.ir.values import *
from livevars.ir.adt import OrderedSet

logger = logging.getLogger(__name__)


class InstVisitor:
    """Dispatches to ``visit_<ClassName>`` for the closest class in the MRO.

    Instructions without a dedicated method (including classes defined
    outside this package) reach ``generic_visit``.
    """

    def visit_function(self, func):
        for bb in func.bbs:
            for inst in bb.insts:
                self.visit(inst)

    def visit(self, inst):
        for cls in type(inst).__mro__:
            if cls in (Instruction, TerminatorInst, UnaryInst):
                break

            method = getattr(self, f"visit_{cls.__name__}", None)
            if method is not None:
                return method(inst)

        return self.generic_visit(inst)

    def generic_visit(self, inst):
        raise NotImplementedError()


def is_tracked_value(value):
    if value is None:
        return False

    # Constants, globals and functions have no storage local to the function.
    return not isinstance(value, (Constant, BasicBlock))


class GenKillClassifier(InstVisitor):
    def __init__(self):
        self.gen_sets = {}
        self.kill_sets = {}
        self.fallback_kinds = set()

    def classify(self, func):
        self.gen_sets = {}
        self.kill_sets = {}

        self.visit_function(func)

        logger.debug("classified %d instructions of %s",
                     len(self.gen_sets), func.value_name)
        return self

    def gen_set(self, inst):
        return self.gen_sets[inst]

    def kill_set(self, inst):
        return self.kill_sets[inst]

    def visit(self, inst):
        self.gen_sets[inst] = OrderedSet()
        self.kill_sets[inst] = OrderedSet()

        super().visit(inst)

    def add_to_gen(self, inst, value):
        if is_tracked_value(value):
            self.gen_sets[inst].add(value)

    def add_operands_to_gen(self, inst):
        for operand in inst.operands:
            self.add_to_gen(inst, operand)

    def add_result_to_kill(self, inst):
        self.kill_sets[inst].add(inst)

    def add_value_result_to_kill(self, inst):
        if inst.produces_value:
            self.add_result_to_kill(inst)

    def visit_value_inst(self, inst):
        self.add_operands_to_gen(inst)
        self.add_value_result_to_kill(inst)

    def generic_visit(self, inst):
        kind = type(inst).__name__
        if kind not in self.fallback_kinds:
            self.fallback_kinds.add(kind)
            logger.warning(
                "no classification rule for %s; reading all operands", kind)

        self.visit_value_inst(inst)

    # Terminator instructions

    def visit_BranchInst(self, inst):
        self.add_operands_to_gen(inst)

    def visit_JumpInst(self, inst):
        self.add_operands_to_gen(inst)

    def visit_SwitchInst(self, inst):
        self.add_operands_to_gen(inst)

    def visit_IndirectBrInst(self, inst):
        self.add_operands_to_gen(inst)

    def visit_ReturnInst(self, inst):
        self.add_operands_to_gen(inst)
        self.add_result_to_kill(inst)

    def visit_InvokeInst(self, inst):
        self.add_operands_to_gen(inst)
        self.add_result_to_kill(inst)

    def visit_ResumeInst(self, inst):
        self.add_operands_to_gen(inst)

    def visit_UnreachableInst(self, inst):
        self.add_operands_to_gen(inst)

    # Binary and comparison operations

    def visit_BinaryInst(self, inst):
        self.visit_value_inst(inst)

    def visit_CmpInst(self, inst):
        self.visit_value_inst(inst)

    # Vector and aggregate operations

    def visit_ExtractElementInst(self, inst):
        self.visit_value_inst(inst)

    def visit_InsertElementInst(self, inst):
        self.visit_value_inst(inst)

    def visit_ShuffleVectorInst(self, inst):
        self.visit_value_inst(inst)

    def visit_ExtractValueInst(self, inst):
        self.visit_value_inst(inst)

    def visit_InsertValueInst(self, inst):
        self.visit_value_inst(inst)

    # Memory access and addressing operations

    def visit_AllocaInst(self, inst):
        self.add_result_to_kill(inst)

    def visit_LoadInst(self, inst):
        self.visit_value_inst(inst)

    def visit_StoreInst(self, inst):
        self.add_to_gen(inst, inst.pointer_operand)
        self.add_to_gen(inst, inst.value_operand)

    def visit_GetElementPtrInst(self, inst):
        self.visit_value_inst(inst)

    def visit_FenceInst(self, inst):
        pass

    def visit_AtomicCmpXchgInst(self, inst):
        self.visit_value_inst(inst)

    def visit_AtomicRMWInst(self, inst):
        self.visit_value_inst(inst)

    # Conversion operations

    def visit_CastInst(self, inst):
        self.visit_value_inst(inst)

    # Other operations

    def visit_CallInst(self, inst):
        self.visit_value_inst(inst)

    def visit_PHINode(self, inst):
        for value in inst.incoming_values:
            self.add_to_gen(inst, value)
        self.add_result_to_kill(inst)

    def visit_SelectInst(self, inst):
        self.visit_value_inst(inst)

    def visit_LandingPadInst(self, inst):
        self.visit_value_inst(inst)

    def visit_VAArgInst(self, inst):
        self.visit_value_inst(inst)
