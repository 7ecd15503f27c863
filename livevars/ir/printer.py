#!/usr/bin/env python
# -*- coding: utf-8 -*-

import struct

from livevars.ir.values import *
from livevars.ir.types import PrimitiveType, StructType, PointerType, LabelType, VoidType, VectorType, ArrayType, FunctionType, i1, f32, f64


class SlotTracker:
    def __init__(self):
        self.func_inst_id = {}

    def track(self, func):
        label = 0

        def assign(value):
            nonlocal label
            if value.has_name:
                self.func_inst_id[value] = value.value_name
            else:
                self.func_inst_id[value] = f"%{label}"
                label += 1

        for arg in func.args:
            assign(arg)

        for block in func.blocks:
            assign(block)

            for inst in block.insts:
                if isinstance(inst.ty, VoidType):
                    continue

                assign(inst)

    def __contains__(self, value):
        return value in self.func_inst_id

    def __getitem__(self, value):
        return self.func_inst_id[value]


def get_type_name(ty):
    if isinstance(ty, PrimitiveType):
        if ty.name == "f32":
            return "float"
        elif ty.name == "f64":
            return "double"
        return ty.name
    if isinstance(ty, VectorType):
        return f"<{ty.size} x {get_type_name(ty.elem_ty)}>"
    if isinstance(ty, ArrayType):
        return f"[{ty.size} x {get_type_name(ty.elem_ty)}]"
    if isinstance(ty, StructType):
        if ty.name != "":
            return f"%{ty.name}"

        field_ty_names = ", ".join([get_type_name(field_ty)
                                    for field_ty in ty.fields])
        if ty.is_packed:
            return f"<{{ {field_ty_names} }}>"
        return f"{{ {field_ty_names} }}"
    if isinstance(ty, PointerType):
        return f"{get_type_name(ty.elem_ty)}*"
    if isinstance(ty, (LabelType, VoidType)):
        return ty.name
    if isinstance(ty, FunctionType):
        param_ty_list = ", ".join(
            [f"{get_type_name(param)}" for param in ty.params if param and not isinstance(param, VoidType)])
        return_ty_name = get_type_name(ty.return_ty)

        if ty.is_variadic:
            param_ty_list += ", ..." if param_ty_list else "..."

        return f"{return_ty_name} ({param_ty_list})"

    raise ValueError("Invalid type.")


def get_value_type(value):
    return get_type_name(value.ty)


def float_to_hex(f):
    f = struct.unpack('f', struct.pack('f', f))[0]
    return "0x{:X}".format(struct.unpack('<Q', struct.pack('<d', f))[0])


def double_to_hex(f):
    return "0x{:X}".format(struct.unpack('<Q', struct.pack('<d', f))[0])


def get_ordering_name(value):
    assert(value != AtomicOrdering.NotAtomic)

    TABLE = {
        AtomicOrdering.Unordered: "unordered",
        AtomicOrdering.Monotonic: "monotonic",
        AtomicOrdering.Acquire: "acquire",
        AtomicOrdering.Release: "release",
        AtomicOrdering.AcquireRelease: "acq_rel",
        AtomicOrdering.SequentiallyConsistent: "seq_cst"
    }

    return TABLE[value]


def get_syncscope(syncscope):
    if syncscope == SyncScope.System:
        return ""
    return f' syncscope("{syncscope.value.name}")'


def get_value_name(value, slot_id_map):
    if value is None:
        return ""

    if isinstance(value, ConstantInt):
        if value.ty == i1:
            return "true" if value.value else "false"
        return str(value)
    elif isinstance(value, ConstantFP):
        if value.ty == f32:
            return float_to_hex(value.value)
        elif value.ty == f64:
            return double_to_hex(value.value)
        raise NotImplementedError()
    elif isinstance(value, ConstantPointerNull):
        return "null"
    elif isinstance(value, UndefValue):
        return "undef"
    elif isinstance(value, (ConstantVector, ConstantArray)):
        elem_ty_name = get_type_name(value.ty.elem_ty)
        lst = ', '.join(
            [f"{elem_ty_name} {get_value_name(elem, slot_id_map)}" for elem in value.values])
        if isinstance(value, ConstantVector):
            return f"<{lst}>"
        return f"[{lst}]"
    elif isinstance(value, ConstantStruct):
        lst = ', '.join(
            [f"{get_type_name(field_value.ty)} {get_value_name(field_value, slot_id_map)}" for field_value in value.values])
        return f"{{ {lst} }}"
    elif isinstance(value, GlobalValue):
        return f"{value.value_name}"
    elif value in slot_id_map:
        return slot_id_map[value]
    elif value.has_name:
        return value.value_name

    raise ValueError("Value is not tracked in this function.")


def print_operand(value, slot_id_map):
    return f"{get_value_type(value)} {get_value_name(value, slot_id_map)}"


def print_inst(inst, slot_id_map):
    def name(value):
        return get_value_name(value, slot_id_map)

    def typed(value):
        return print_operand(value, slot_id_map)

    if isinstance(inst, ReturnInst):
        if inst.rs is not None:
            return f"ret {typed(inst.rs)}"
        else:
            return f"ret void"

    if isinstance(inst, JumpInst):
        return f"br {typed(inst.goto_target)}"

    if isinstance(inst, BranchInst):
        return f"br {typed(inst.cond)}, {typed(inst.then_target)}, {typed(inst.else_target)}"

    if isinstance(inst, SwitchInst):
        cases = " ".join(
            [f"{typed(value)}, {typed(block)}" for value, block in inst.cases])

        return f"switch {typed(inst.value)}, {typed(inst.default)} [{cases}]"

    if isinstance(inst, IndirectBrInst):
        dests = ", ".join([typed(dest) for dest in inst.dests])
        return f"indirectbr {typed(inst.addr)}, [{dests}]"

    if isinstance(inst, InvokeInst):
        arg_list = ", ".join([typed(arg) for arg in inst.args])
        call = f"invoke {get_type_name(inst.func_ty.return_ty)} {name(inst.callee)}({arg_list}) to {typed(inst.normal_dest)} unwind {typed(inst.unwind_dest)}"
        if isinstance(inst.ty, VoidType):
            return call
        return f"{name(inst)} = {call}"

    if isinstance(inst, ResumeInst):
        return f"resume {typed(inst.value)}"

    if isinstance(inst, UnreachableInst):
        return "unreachable"

    if isinstance(inst, LoadInst):
        return f"{name(inst)} = load {get_value_type(inst)}, {typed(inst.rs)}"

    if isinstance(inst, StoreInst):
        return f"store {typed(inst.rs)}, {typed(inst.rd)}"

    if isinstance(inst, FenceInst):
        return f"fence{get_syncscope(inst.syncscope)} {get_ordering_name(inst.ordering)}"

    if isinstance(inst, AtomicRMWInst):
        return f"{name(inst)} = atomicrmw {inst.op} {typed(inst.pointer_operand)}, {typed(inst.value)}{get_syncscope(inst.syncscope)} {get_ordering_name(inst.ordering)}"

    if isinstance(inst, AtomicCmpXchgInst):
        ptr, cmp, new_value = inst.operands
        return f"{name(inst)} = cmpxchg {typed(ptr)}, {typed(cmp)}, {typed(new_value)}{get_syncscope(inst.syncscope)} {get_ordering_name(inst.success_ordering)} {get_ordering_name(inst.failure_ordering)}"

    if isinstance(inst, GetElementPtrInst):
        idx_list = ", ".join([typed(idx) for idx in inst.idx])
        inbounds = "inbounds " if inst.inbounds else ""
        return f"{name(inst)} = getelementptr {inbounds}{get_type_name(inst.pointee_ty)}, {typed(inst.rs)}, {idx_list}"

    if isinstance(inst, ExtractValueInst):
        idx_list = ", ".join([f"{idx}" for idx in inst.idx])
        return f"{name(inst)} = extractvalue {typed(inst.value)}, {idx_list}"

    if isinstance(inst, InsertValueInst):
        idx_list = ", ".join([f"{idx}" for idx in inst.idx])
        return f"{name(inst)} = insertvalue {typed(inst.aggregate)}, {typed(inst.value)}, {idx_list}"

    if isinstance(inst, BinaryInst):
        return f"{name(inst)} = {inst.op} {typed(inst.rs)}, {name(inst.rt)}"

    if isinstance(inst, CmpInst):
        return f"{name(inst)} = {inst.opcode} {inst.op} {typed(inst.rs)}, {name(inst.rt)}"

    if isinstance(inst, CallInst):
        arg_list = ", ".join([typed(arg) for arg in inst.args])
        if inst.func_ty.is_variadic:
            ty_or_fnty = get_type_name(inst.func_ty)
        else:
            ty_or_fnty = get_type_name(inst.func_ty.return_ty)

        if isinstance(inst.ty, VoidType):
            return f"call {ty_or_fnty} {name(inst.callee)}({arg_list})"
        else:
            return f"{name(inst)} = call {ty_or_fnty} {name(inst.callee)}({arg_list})"

    if isinstance(inst, AllocaInst):
        size_part = ""
        if not isinstance(inst.count, ConstantInt) or inst.count.value != 1:
            size_part = f", {typed(inst.count)}"
        return f"{name(inst)} = alloca {get_type_name(inst.alloca_ty)}{size_part}, align {inst.align}"

    if isinstance(inst, VAArgInst):
        return f"{name(inst)} = va_arg {typed(inst.rs)}, {get_value_type(inst)}"

    if isinstance(inst, CastInst):
        return f"{name(inst)} = {inst.op} {typed(inst.rs)} to {get_value_type(inst)}"

    if isinstance(inst, SelectInst):
        return f"{name(inst)} = select {typed(inst.cond)}, {typed(inst.true_value)}, {typed(inst.false_value)}"

    if isinstance(inst, InsertElementInst):
        return f"{name(inst)} = insertelement {typed(inst.vec)}, {typed(inst.elem)}, {typed(inst.idx)}"

    if isinstance(inst, ExtractElementInst):
        return f"{name(inst)} = extractelement {typed(inst.vec)}, {typed(inst.idx)}"

    if isinstance(inst, ShuffleVectorInst):
        return f"{name(inst)} = shufflevector {typed(inst.vec1)}, {typed(inst.vec2)}, {typed(inst.mask)}"

    if isinstance(inst, PHINode):
        values = [
            f"[ {name(value)}, {name(block)} ]" for value, block in zip(inst.incoming_values, inst.incoming_blocks)]
        return f"{name(inst)} = phi {get_value_type(inst)} {', '.join(values)}"

    if isinstance(inst, LandingPadInst):
        parts = [f"{name(inst)} = landingpad {get_value_type(inst)}"]
        if inst.cleanup:
            parts.append("cleanup")
        parts.extend([f"catch {typed(clause)}" for clause in inst.clauses])
        return " ".join(parts)

    operands = ", ".join([typed(op) for op in inst.operands])
    if inst.produces_value:
        return f"{name(inst)} = {inst.opcode} {operands}"
    return f"{inst.opcode} {operands}"


def print_block_label(block, slot_id_map):
    return slot_id_map[block][1:]


def print_block(block, slot_id_map, indent=2):
    lines = []
    lines.append(f"{print_block_label(block, slot_id_map)}:")
    lines.extend([(' ' * indent) + print_inst(inst, slot_id_map)
                  for inst in block.insts])

    return "\n".join(lines)


def print_function(func, indent=0):
    lines = []

    slot_id_map = SlotTracker()
    slot_id_map.track(func)

    arg_list = ", ".join(
        [print_operand(arg, slot_id_map) for arg in func.args])
    if func.is_variadic:
        arg_list = arg_list + ", ..." if arg_list else "..."

    if func.is_declaration:
        lines.append(
            f"declare {get_type_name(func.return_ty)} {func.value_name}({arg_list})")
    else:
        lines.append(
            f"define {get_type_name(func.return_ty)} {func.value_name}({arg_list}) {{")
        lines.extend([print_block(block, slot_id_map) for block in func.blocks])
        lines.append("}")

    lines = list(map(lambda l: (' ' * indent) + l, lines))
    return "\n".join(lines)
