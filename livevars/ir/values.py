#!/usr/bin/env python
# -*- coding: utf-8 -*-

from enum import Enum, auto
from livevars.ir.types import Type, VoidType, PointerType, FunctionType, VectorType, StructType, ArrayType, get_indexed_type, void, label, i1


class Module:
    def __init__(self, name=""):
        self.name = name
        self.funcs = {}

    def add_func(self, func):
        self.funcs[func.name] = func
        return func


class Value:
    def __init__(self, ty: Type, name=""):
        self.name = name
        self.ty = ty
        self._uses = []

    @property
    def uses(self):
        return tuple(self._uses)

    def add_use(self, user):
        self._uses.append(user)

    def remove_use(self, user):
        self._uses.remove(user)

    @property
    def has_name(self):
        return self.name != ""

    @property
    def value_name(self):
        if not self.has_name:
            return ""

        if isinstance(self, GlobalValue):
            return f"@{self.name}"

        return f"%{self.name}"

    def __repr__(self):
        if self.has_name:
            return self.value_name
        return f"<{self.__class__.__name__} at {id(self):#x}>"


class Constant(Value):
    pass


class UndefValue(Constant):
    def __init__(self, ty):
        super().__init__(ty)

    def __eq__(self, other):
        if not isinstance(other, UndefValue):
            return False

        return self.ty == other.ty

    def __hash__(self):
        return hash((self.__class__, self.ty))


class ConstantInt(Constant):
    def __init__(self, value: int, ty):
        super().__init__(ty)
        assert(isinstance(value, int))
        self.value = value

    def __repr__(self):
        return str(self.value)

    def __str__(self):
        return str(self.value)

    def __eq__(self, other):
        if not isinstance(other, ConstantInt):
            return False

        return self.ty == other.ty and self.value == other.value

    def __hash__(self):
        return hash(tuple([self.ty, self.value]))


class ConstantFP(Constant):
    def __init__(self, value: float, ty):
        super().__init__(ty)
        assert(isinstance(value, float))
        self.value = value

    def __repr__(self):
        return str(self.value)

    def __str__(self):
        return "{:e}".format(self.value)

    def __eq__(self, other):
        if not isinstance(other, ConstantFP):
            return False

        return self.ty == other.ty and self.value == other.value

    def __hash__(self):
        return hash((self.ty, self.value))


class ConstantPointerNull(Constant):
    def __init__(self, ty):
        super().__init__(ty)

    def __eq__(self, other):
        if not isinstance(other, ConstantPointerNull):
            return False

        return self.ty == other.ty

    def __hash__(self):
        return hash((self.ty,))


class ConstantVector(Constant):
    def __init__(self, values, ty):
        super().__init__(ty)
        assert(isinstance(ty, VectorType))
        assert(len(values) == ty.size)
        self.values = values

    def __eq__(self, other):
        if not isinstance(other, ConstantVector):
            return False

        return self.ty == other.ty and self.values == other.values

    def __hash__(self):
        return hash((self.ty, *self.values))


class ConstantArray(Constant):
    def __init__(self, values, ty):
        super().__init__(ty)
        assert(isinstance(ty, ArrayType))
        self.values = values

    def __eq__(self, other):
        if not isinstance(other, ConstantArray):
            return False

        return self.ty == other.ty and self.values == other.values

    def __hash__(self):
        return hash((self.ty, *self.values))


class ConstantStruct(Constant):
    def __init__(self, values, ty):
        super().__init__(ty)
        assert(isinstance(ty, StructType))
        self.values = values

    def __eq__(self, other):
        if not isinstance(other, ConstantStruct):
            return False

        return self.ty == other.ty and self.values == other.values

    def __hash__(self):
        return hash((self.ty, *self.values))


class GlobalLinkage(Enum):
    External = auto()
    Internal = auto()


class GlobalValue(Constant):
    def __init__(self, ty, linkage, name=""):
        super().__init__(PointerType(ty), name)
        self.linkage = linkage
        self.vty = ty


class GlobalVariable(GlobalValue):
    def __init__(self, ty, linkage, name, initializer=None, is_constant=False):
        super().__init__(ty, linkage, name)
        self.initializer = initializer
        self.is_constant = is_constant


class Argument(Value):
    def __init__(self, ty, name=""):
        super().__init__(ty, name)


class Function(GlobalValue):
    def __init__(self, module, ty: FunctionType, name):
        super().__init__(ty, GlobalLinkage.External, name)
        self.module = module
        self.return_ty = ty.return_ty
        self.bbs = []
        self.args = []

        if module is not None:
            module.add_func(self)

    @property
    def is_declaration(self):
        return len(self.bbs) == 0

    @property
    def is_variadic(self):
        return self.vty.is_variadic

    def add_block(self, block, block_before):
        if block_before:
            idx = self.bbs.index(block_before)
            self.bbs.insert(idx + 1, block)
        else:
            self.bbs.append(block)

    def add_arg(self, arg):
        self.args.append(arg)
        return arg

    @property
    def blocks(self):
        return self.bbs

    @property
    def entry_block(self):
        if len(self.bbs) == 0:
            return None
        return self.bbs[0]

    @property
    def insts(self):
        return [inst for bb in self.bbs for inst in bb.insts]


class BasicBlock(Value):
    def __init__(self, func, block_before=None, name=""):
        super().__init__(label, name)
        self.func = func
        self.insts = []

        func.add_block(self, block_before)

    @property
    def terminator(self):
        if len(self.insts) == 0 or not self.insts[-1].is_terminator:
            return None

        return self.insts[-1]

    @property
    def phis(self):
        return [inst for inst in self.insts if isinstance(inst, PHINode)]

    @property
    def first_non_phi(self):
        for inst in self.insts:
            if not isinstance(inst, PHINode):
                return inst
        return None

    @property
    def successors(self):
        term = self.terminator
        if term is None:
            return []

        succs = []
        for succ in term.successors:
            if succ not in succs:
                succs.append(succ)
        return succs

    @property
    def predecessors(self):
        return [bb for bb in self.func.bbs if self in bb.successors]

    def add_inst(self, inst, inst_before):
        if inst_before:
            idx = self.insts.index(inst_before)
            self.insts.insert(idx + 1, inst)
        else:
            self.insts.append(inst)


class User(Value):
    def __init__(self, ty, ops, num_ops, name=""):
        super().__init__(ty, name)

        self._operands = [None] * num_ops
        for idx, op in enumerate(ops):
            self.set_operand(idx, op)

    def set_operand(self, idx: int, value: Value):
        if self._operands[idx] is not None:
            self._operands[idx].remove_use(self)

        if value is not None:
            value.add_use(self)

        self._operands[idx] = value

    def get_operand(self, idx: int):
        return self._operands[idx]

    def append_operand(self, value: Value):
        self._operands.append(None)
        self.set_operand(len(self._operands) - 1, value)

    @property
    def operands(self):
        return tuple(self._operands)


class Instruction(User):
    def __init__(self, block_or_inst, ty, ops, num_ops, name=""):
        super().__init__(ty, ops, num_ops, name)

        if isinstance(block_or_inst, BasicBlock):
            self.block = block_or_inst
            self.block.add_inst(self, None)
        else:
            assert(isinstance(block_or_inst, Instruction))
            self.block = block_or_inst.block
            self.block.add_inst(self, block_or_inst)

    @property
    def opcode(self):
        raise NotImplementedError()

    @property
    def successors(self):
        return []

    @property
    def is_terminator(self):
        return False

    @property
    def produces_value(self):
        return not isinstance(self.ty, VoidType)


class UnaryInst(Instruction):
    def __init__(self, block, ty, rs: Value, name=""):
        super().__init__(block, ty, [rs], 1, name)

    @property
    def rs(self):
        return self.get_operand(0)


class BinaryInst(Instruction):
    def __init__(self, block, op, rs, rt, name=""):
        assert(rs.ty == rt.ty)
        super().__init__(block, rs.ty, [rs, rt], 2, name)
        self.op = op

    @property
    def opcode(self):
        return self.op

    @property
    def rs(self):
        return self.get_operand(0)

    @property
    def rt(self):
        return self.get_operand(1)


class CmpInst(Instruction):
    def __init__(self, block, op, rs, rt, name=""):
        assert(rs.ty == rt.ty)
        super().__init__(block, i1, [rs, rt], 2, name)
        self.op = op

    @property
    def opcode(self):
        return "icmp"

    @property
    def rs(self):
        return self.get_operand(0)

    @property
    def rt(self):
        return self.get_operand(1)


class FCmpInst(CmpInst):
    @property
    def opcode(self):
        return "fcmp"


class LoadInst(UnaryInst):
    def __init__(self, block, rs: Value, name="", is_volatile=False):
        assert(isinstance(rs.ty, PointerType))
        super().__init__(block, rs.ty.elem_ty, rs, name)
        self.is_volatile = is_volatile

    @property
    def opcode(self):
        return "load"

    @property
    def pointer_operand(self):
        return self.rs


class StoreInst(Instruction):
    def __init__(self, block, rs: Value, rd: Value, is_volatile=False):
        assert(isinstance(rd.ty, PointerType))
        assert(rd.ty.elem_ty == rs.ty)
        super().__init__(block, void, [rs, rd], 2)
        self.is_volatile = is_volatile

    @property
    def opcode(self):
        return "store"

    @property
    def rs(self):
        return self.get_operand(0)

    @property
    def rd(self):
        return self.get_operand(1)

    @property
    def value_operand(self):
        return self.rs

    @property
    def pointer_operand(self):
        return self.rd


class GetElementPtrInst(Instruction):
    def __init__(self, block, rs, *idx, name=""):
        assert(isinstance(rs.ty, PointerType))
        elem_ty = get_indexed_type(rs.ty, list(idx))

        super().__init__(block, PointerType(
            elem_ty), [rs, *idx], 1 + len(idx), name)
        self.pointee_ty = rs.ty.elem_ty
        self.inbounds = all(isinstance(i, Constant) for i in idx)

    @property
    def opcode(self):
        return "getelementptr"

    @property
    def rs(self):
        return self.get_operand(0)

    @property
    def pointer_operand(self):
        return self.rs

    @property
    def idx(self):
        return self.operands[1:]


class AllocaInst(UnaryInst):
    def __init__(self, block, count, ty, align=4, name=""):
        super().__init__(block, PointerType(ty), count, name)
        self.alloca_ty = ty
        self.align = align

    @property
    def opcode(self):
        return "alloca"

    @property
    def count(self):
        return self.get_operand(0)


class PHINode(Instruction):
    def __init__(self, block, ty, incoming=(), name=""):
        super().__init__(block, ty, [], 0, name)

        for value, bb in incoming:
            self.add_incoming(value, bb)

    @property
    def opcode(self):
        return "phi"

    def add_incoming(self, value, block):
        if value.ty != self.ty:
            raise ValueError("Values must be the same types.")
        assert(isinstance(block, BasicBlock))

        self.append_operand(value)
        self.append_operand(block)

    @property
    def values(self):
        return {k: v for k, v in zip(self.incoming_blocks, self.incoming_values)}

    @property
    def incoming_values(self):
        return [value for value in self.operands[::2]]

    @property
    def incoming_blocks(self):
        return [value for value in self.operands[1::2]]

    def incoming_values_for(self, block):
        return [value for value, bb in zip(self.incoming_values, self.incoming_blocks) if bb is block]


def get_callee_function_type(callee):
    if isinstance(callee, Function):
        return callee.vty

    assert(isinstance(callee.ty, PointerType))
    assert(isinstance(callee.ty.elem_ty, FunctionType))
    return callee.ty.elem_ty


class CallInst(Instruction):
    def __init__(self, block, callee, args, name=""):
        self.func_ty = get_callee_function_type(callee)
        super().__init__(block, self.func_ty.return_ty,
                         [callee, *args], 1 + len(args), name)

    @property
    def opcode(self):
        return "call"

    @property
    def callee(self):
        return self.get_operand(0)

    @property
    def args(self):
        return self.operands[1:]


class CastInst(UnaryInst):
    def __init__(self, block, op, rs, ty, name=""):
        super().__init__(block, ty, rs, name)
        self.op = op

    @property
    def opcode(self):
        return self.op


class TruncInst(CastInst):
    def __init__(self, block, rs, ty, name=""):
        super().__init__(block, "trunc", rs, ty, name)


class ZExtInst(CastInst):
    def __init__(self, block, rs, ty, name=""):
        super().__init__(block, "zext", rs, ty, name)


class SExtInst(CastInst):
    def __init__(self, block, rs, ty, name=""):
        super().__init__(block, "sext", rs, ty, name)


class BitCastInst(CastInst):
    def __init__(self, block, rs, ty, name=""):
        super().__init__(block, "bitcast", rs, ty, name)


class IntToPtrInst(CastInst):
    def __init__(self, block, rs, ty, name=""):
        super().__init__(block, "inttoptr", rs, ty, name)


class PtrToIntInst(CastInst):
    def __init__(self, block, rs, ty, name=""):
        super().__init__(block, "ptrtoint", rs, ty, name)


class SelectInst(Instruction):
    def __init__(self, block, cond, true_value, false_value, name=""):
        assert(true_value.ty == false_value.ty)
        super().__init__(block, true_value.ty, [
            cond, true_value, false_value], 3, name)

    @property
    def opcode(self):
        return "select"

    @property
    def cond(self):
        return self.get_operand(0)

    @property
    def true_value(self):
        return self.get_operand(1)

    @property
    def false_value(self):
        return self.get_operand(2)


class InsertElementInst(Instruction):
    def __init__(self, block, vec, elem, idx, name=""):
        assert(isinstance(vec.ty, VectorType))
        super().__init__(block, vec.ty, [vec, elem, idx], 3, name)

    @property
    def opcode(self):
        return "insertelement"

    @property
    def vec(self):
        return self.get_operand(0)

    @property
    def elem(self):
        return self.get_operand(1)

    @property
    def idx(self):
        return self.get_operand(2)


class ExtractElementInst(Instruction):
    def __init__(self, block, vec, idx, name=""):
        assert(isinstance(vec.ty, VectorType))
        super().__init__(block, vec.ty.elem_ty, [vec, idx], 2, name)

    @property
    def opcode(self):
        return "extractelement"

    @property
    def vec(self):
        return self.get_operand(0)

    @property
    def idx(self):
        return self.get_operand(1)


class ShuffleVectorInst(Instruction):
    def __init__(self, block, vec1, vec2, mask, name=""):
        assert(isinstance(vec1.ty, VectorType))
        assert(isinstance(mask, ConstantVector))
        super().__init__(block, VectorType(vec1.ty.elem_ty, mask.ty.size), [
            vec1, vec2, mask], 3, name)

    @property
    def opcode(self):
        return "shufflevector"

    @property
    def vec1(self):
        return self.get_operand(0)

    @property
    def vec2(self):
        return self.get_operand(1)

    @property
    def mask(self):
        return self.get_operand(2)


class ExtractValueInst(Instruction):
    def __init__(self, block, value, idx, name=""):
        super().__init__(block, get_indexed_type(
            value.ty, list(idx)), [value], 1, name)
        self.idx = list(idx)

    @property
    def opcode(self):
        return "extractvalue"

    @property
    def value(self):
        return self.get_operand(0)


class InsertValueInst(Instruction):
    def __init__(self, block, aggregate, value, idx, name=""):
        super().__init__(block, aggregate.ty, [aggregate, value], 2, name)
        self.idx = list(idx)

    @property
    def opcode(self):
        return "insertvalue"

    @property
    def aggregate(self):
        return self.get_operand(0)

    @property
    def value(self):
        return self.get_operand(1)


class AtomicOrdering(Enum):
    NotAtomic = 0
    Unordered = 1
    Monotonic = 2
    Acquire = 3
    Release = 4
    AcquireRelease = 5
    SequentiallyConsistent = 6


class SyncScopeValue:
    def __init__(self, name, id):
        self.name = name
        self.id = id


class SyncScope(Enum):
    # Synchronized with respect to signal handlers executing in the same thread.
    SingleThread = SyncScopeValue("singlethread", 0)

    # Synchronized with respect to all concurrently executing threads.
    System = SyncScopeValue("system", 1)


class FenceInst(Instruction):
    def __init__(self, block, ordering: AtomicOrdering, syncscope: SyncScope = SyncScope.System):
        super().__init__(block, void, [], 0)

        self.ordering = ordering
        self.syncscope = syncscope

    @property
    def opcode(self):
        return "fence"


class AtomicCmpXchgInst(Instruction):
    def __init__(self, block, ptr, cmp, new_value, success_ordering, failure_ordering, syncscope: SyncScope = SyncScope.System, name=""):
        super().__init__(block, StructType(fields=[cmp.ty, i1]), [
            ptr, cmp, new_value], 3, name)

        self.success_ordering = success_ordering
        self.failure_ordering = failure_ordering
        self.syncscope = syncscope

    @property
    def opcode(self):
        return "cmpxchg"

    @property
    def pointer_operand(self):
        return self.get_operand(0)


class AtomicRMWInst(Instruction):
    def __init__(self, block, op, ptr, value, ordering, syncscope: SyncScope = SyncScope.System, name=""):
        super().__init__(block, value.ty, [ptr, value], 2, name)

        self.op = op
        self.ordering = ordering
        self.syncscope = syncscope

    @property
    def opcode(self):
        return "atomicrmw"

    @property
    def pointer_operand(self):
        return self.get_operand(0)

    @property
    def value(self):
        return self.get_operand(1)


class LandingPadInst(Instruction):
    def __init__(self, block, ty, clauses=(), cleanup=False, name=""):
        super().__init__(block, ty, list(clauses), len(clauses), name)
        self.cleanup = cleanup

    @property
    def opcode(self):
        return "landingpad"

    @property
    def clauses(self):
        return self.operands


class VAArgInst(UnaryInst):
    def __init__(self, block, va_list, ty, name=""):
        assert(isinstance(va_list.ty, PointerType))
        super().__init__(block, ty, va_list, name)

    @property
    def opcode(self):
        return "va_arg"


# terminator


class TerminatorInst(Instruction):
    @property
    def is_terminator(self):
        return True


class SwitchInst(TerminatorInst):
    def __init__(self, block, value, default, cases=()):
        ops = [value, default]
        for case_value, case_dest in cases:
            ops.extend([case_value, case_dest])

        super().__init__(block, void, ops, len(ops))

    @property
    def opcode(self):
        return "switch"

    @property
    def value(self):
        return self.get_operand(0)

    @property
    def default(self):
        return self.get_operand(1)

    @property
    def cases(self):
        return list(zip(self.case_vals, self.case_dests))

    @property
    def case_vals(self):
        return self.operands[2::2]

    @property
    def case_dests(self):
        return self.operands[3::2]

    @property
    def successors(self):
        return [self.default, *self.case_dests]


class BranchInst(TerminatorInst):
    def __init__(self, block, cond, then_target, else_target):
        super().__init__(block, void, [
            cond, then_target, else_target], 3)

    @property
    def opcode(self):
        return "br"

    @property
    def cond(self):
        return self.get_operand(0)

    @property
    def then_target(self):
        return self.get_operand(1)

    @property
    def else_target(self):
        return self.get_operand(2)

    @property
    def successors(self):
        return [self.then_target, self.else_target]


class JumpInst(TerminatorInst):
    def __init__(self, block, goto_target):
        super().__init__(block, void, [goto_target], 1)

    @property
    def opcode(self):
        return "br"

    @property
    def goto_target(self):
        return self.get_operand(0)

    @property
    def successors(self):
        return [self.goto_target]


class IndirectBrInst(TerminatorInst):
    def __init__(self, block, addr, dests):
        super().__init__(block, void, [addr, *dests], 1 + len(dests))

    @property
    def opcode(self):
        return "indirectbr"

    @property
    def addr(self):
        return self.get_operand(0)

    @property
    def dests(self):
        return self.operands[1:]

    @property
    def successors(self):
        return list(self.dests)


class ReturnInst(TerminatorInst):
    def __init__(self, block, rs=None):
        super().__init__(block, void, [] if rs is None else [rs], 0 if rs is None else 1)

    @property
    def opcode(self):
        return "ret"

    @property
    def rs(self):
        if len(self.operands) == 0:
            return None
        return self.get_operand(0)


class InvokeInst(TerminatorInst):
    def __init__(self, block, callee, args, normal_dest, unwind_dest, name=""):
        self.func_ty = get_callee_function_type(callee)
        super().__init__(block, self.func_ty.return_ty, [
            callee, *args, normal_dest, unwind_dest], 3 + len(args), name)

    @property
    def opcode(self):
        return "invoke"

    @property
    def callee(self):
        return self.get_operand(0)

    @property
    def args(self):
        return self.operands[1:-2]

    @property
    def normal_dest(self):
        return self.operands[-2]

    @property
    def unwind_dest(self):
        return self.operands[-1]

    @property
    def successors(self):
        return [self.normal_dest, self.unwind_dest]


class ResumeInst(TerminatorInst):
    def __init__(self, block, value):
        super().__init__(block, void, [value], 1)

    @property
    def opcode(self):
        return "resume"

    @property
    def value(self):
        return self.get_operand(0)


class UnreachableInst(TerminatorInst):
    def __init__(self, block):
        super().__init__(block, void, [], 0)

    @property
    def opcode(self):
        return "unreachable"
