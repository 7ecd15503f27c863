#!/usr/bin/env python
# -*- coding: utf-8 -*-


class Type:
    """Base of all IR types. Two types are equal when their keys are equal."""

    def key(self):
        return (self.__class__,)

    def __eq__(self, other):
        return isinstance(other, Type) and self.key() == other.key()

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash(self.key())

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name}>"


class VoidType(Type):
    name = "void"


class LabelType(Type):
    name = "label"


class PrimitiveType(Type):
    def __init__(self, name):
        self.name = name

    def key(self):
        return (PrimitiveType, self.name)


class PointerType(Type):
    def __init__(self, elem_ty):
        assert(isinstance(elem_ty, Type))
        self.elem_ty = elem_ty

    def key(self):
        return (PointerType, self.elem_ty)

    @property
    def name(self):
        return f"{self.elem_ty.name}*"


class StructType(Type):
    def __init__(self, name=None, fields=None, is_packed=False):
        self.name = name if name else ""
        self.fields = fields if fields else []
        self.is_packed = is_packed

    def key(self):
        return (StructType, self.name, tuple(self.fields), self.is_packed)


class ArrayType(Type):
    def __init__(self, elem_ty, size):
        assert(isinstance(size, int))
        self.elem_ty = elem_ty
        self.size = size

    def key(self):
        return (self.__class__, self.elem_ty, self.size)

    @property
    def name(self):
        return f"[{self.size} x {self.elem_ty.name}]"


class VectorType(ArrayType):
    @property
    def name(self):
        return f"<{self.size} x {self.elem_ty.name}>"


class FunctionType(Type):
    def __init__(self, return_ty, params, is_variadic=False):
        self.return_ty = return_ty
        self.params = params
        self.is_variadic = is_variadic

    def key(self):
        return (FunctionType, self.return_ty, tuple(self.params), self.is_variadic)

    @property
    def name(self):
        params = [param.name for param in self.params]
        if self.is_variadic:
            params.append("...")
        return f"{self.return_ty.name} ({', '.join(params)})"


void = VoidType()
label = LabelType()

i1 = PrimitiveType("i1")
i8 = PrimitiveType("i8")
i16 = PrimitiveType("i16")
i32 = PrimitiveType("i32")
i64 = PrimitiveType("i64")

f32 = PrimitiveType("f32")
f64 = PrimitiveType("f64")


def get_indexed_type(ty, idx_list):
    """Type reached by walking ``idx_list`` into ``ty``, as GEP and extractvalue do.

    Struct indices may be ints or ConstantInts.
    """
    for idx in idx_list:
        if isinstance(ty, StructType):
            ty = ty.fields[idx if isinstance(idx, int) else idx.value]
        elif isinstance(ty, (PointerType, ArrayType)):
            ty = ty.elem_ty
        else:
            raise ValueError(f"Type {ty.name} can't be indexed.")
    return ty
