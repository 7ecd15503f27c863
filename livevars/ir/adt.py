#!/usr/bin/env python
# -*- coding: utf-8 -*-


class OrderedSet:
    """Set that iterates in insertion order.

    Membership is a hash lookup; the order only matters for printing, so two
    sets with the same elements compare equal regardless of order.
    """

    def __init__(self, values=()):
        self._items = dict.fromkeys(values)

    def add(self, value):
        self._items[value] = None

    def update(self, values):
        for value in values:
            self._items[value] = None

    def discard(self, value):
        self._items.pop(value, None)

    def remove(self, value):
        del self._items[value]

    def clear(self):
        self._items.clear()

    def copy(self):
        return OrderedSet(self._items)

    def union(self, *others):
        result = self.copy()
        for other in others:
            result.update(other)
        return result

    def difference(self, *others):
        result = self.copy()
        for other in others:
            for value in other:
                result.discard(value)
        return result

    def intersection(self, other):
        return OrderedSet(value for value in self._items if value in other)

    def issubset(self, other):
        return all(value in other for value in self._items)

    def issuperset(self, other):
        return all(value in self._items for value in other)

    def __or__(self, other):
        return self.union(other)

    def __sub__(self, other):
        return self.difference(other)

    def __and__(self, other):
        return self.intersection(other)

    def __le__(self, other):
        return self.issubset(other)

    def __ge__(self, other):
        return self.issuperset(other)

    def __contains__(self, value):
        return value in self._items

    def __iter__(self):
        return iter(self._items)

    def __len__(self):
        return len(self._items)

    def __bool__(self):
        return len(self._items) > 0

    def __eq__(self, other):
        if isinstance(other, OrderedSet):
            return self._items.keys() == other._items.keys()
        if isinstance(other, (set, frozenset)):
            return self._items.keys() == other

        return NotImplemented

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __repr__(self):
        return f"OrderedSet({list(self._items)!r})"
