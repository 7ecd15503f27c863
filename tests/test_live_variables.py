#!/usr/bin/env python
# -*- coding: utf-8 -*-

from unittest import TestCase, main
from livevars.ir.values import *
from livevars.ir.types import *
from livevars.analysis.live_variables import *


def make_function(name, params, return_ty=void):
    module = Module()
    func = Function(module, FunctionType(
        return_ty, [ty for _, ty in params]), name)
    args = [func.add_arg(Argument(ty, arg_name)) for arg_name, ty in params]
    return func, args


def build_straight_line():
    func, (x, y, p) = make_function(
        "straight", [("x", i32), ("y", i32), ("p", PointerType(i32))])
    entry = BasicBlock(func, name="entry")
    a = BinaryInst(entry, "add", x, y, name="a")
    store = StoreInst(entry, a, p)
    ret = ReturnInst(entry)
    return func, (x, y, p), (a, store, ret)


def build_diamond():
    func, (c, x) = make_function("diamond", [("c", i1), ("x", i32)], i32)
    b1 = BasicBlock(func, name="b1")
    b2 = BasicBlock(func, name="b2")
    b3 = BasicBlock(func, name="b3")
    b4 = BasicBlock(func, name="b4")

    BranchInst(b1, c, b2, b3)
    v2 = BinaryInst(b2, "add", x, ConstantInt(1, i32), name="v2")
    JumpInst(b2, b4)
    v3 = BinaryInst(b3, "mul", x, ConstantInt(2, i32), name="v3")
    JumpInst(b3, b4)
    m = PHINode(b4, i32, [(v2, b2), (v3, b3)], name="m")
    ReturnInst(b4, m)
    return func, (c, x), (b1, b2, b3, b4), (v2, v3, m)


def build_counting_loop():
    func, (n,) = make_function("loop", [("n", i32)], i32)
    entry = BasicBlock(func, name="entry")
    loop = BasicBlock(func, name="loop")
    exit = BasicBlock(func, name="exit")

    JumpInst(entry, loop)
    i = PHINode(loop, i32, [(ConstantInt(0, i32), entry)], name="i")
    next = BinaryInst(loop, "add", i, ConstantInt(1, i32), name="next")
    i.add_incoming(next, loop)
    cond = CmpInst(loop, "slt", next, n, name="cond")
    BranchInst(loop, cond, loop, exit)
    ReturnInst(exit, next)
    return func, n, (entry, loop, exit), (i, next, cond)


def build_self_referential_loop():
    func, (x, c) = make_function("selfref", [("x", i32), ("c", i1)], i32)
    entry = BasicBlock(func, name="entry")
    loop = BasicBlock(func, name="loop")
    exit = BasicBlock(func, name="exit")

    JumpInst(entry, loop)
    i = PHINode(loop, i32, [(x, entry)], name="i")
    i.add_incoming(i, loop)
    BranchInst(loop, c, loop, exit)
    ReturnInst(exit, i)
    return func, (x, c), (entry, loop, exit), i


class StraightLineTest(TestCase):
    def setUp(self):
        self.func, self.args, self.insts = build_straight_line()
        self.result = LiveVariables().run(self.func)

    def test_store_gen_kill(self):
        x, y, p = self.args
        a, store, ret = self.insts

        self.assertEqual(self.result.gen(store), {p, a})
        self.assertEqual(len(self.result.kill(store)), 0)

    def test_live_out_sets(self):
        x, y, p = self.args
        a, store, ret = self.insts

        self.assertEqual(self.result.live_out(ret), set())
        self.assertEqual(self.result.live_out(store), set())
        self.assertEqual(self.result.live_out(a), {a, p})

    def test_live_through_add(self):
        x, y, p = self.args
        a, store, ret = self.insts

        self.assertEqual(self.result.live_through(a), {p})

    def test_block_live_in(self):
        x, y, p = self.args
        entry = self.func.entry_block

        self.assertEqual(self.result.live_in(entry), {x, y, p})
        self.assertEqual(self.result.live_out(entry), set())

    def test_converges_in_two_passes(self):
        self.assertEqual(self.result.passes, 2)

    def test_no_dead_definitions(self):
        self.assertEqual(self.result.dead_definitions(), [])


class DiamondTest(TestCase):
    def setUp(self):
        self.func, self.args, self.blocks, self.values = build_diamond()
        self.result = compute_live_variables(self.func)

    def test_phi_operand_live_only_on_its_edge(self):
        b1, b2, b3, b4 = self.blocks
        v2, v3, m = self.values

        self.assertIn(v2, self.result.live_out(b2.terminator))
        self.assertNotIn(v3, self.result.live_out(b2.terminator))
        self.assertIn(v3, self.result.live_out(b3.terminator))
        self.assertNotIn(v2, self.result.live_out(b3.terminator))

    def test_merge_block_live_in(self):
        b1, b2, b3, b4 = self.blocks
        v2, v3, m = self.values

        self.assertEqual(self.result.live_in(b4), {v2, v3})
        self.assertIn(m, self.result.live_out(m))

    def test_entry_live_in(self):
        c, x = self.args
        b1, b2, b3, b4 = self.blocks

        self.assertEqual(self.result.live_in(b1), {c, x})
        self.assertEqual(self.result.live_out(b1), {x})
        self.assertEqual(self.result.live_in(b2), {x})
        self.assertEqual(self.result.live_in(b3), {x})


class LoopTest(TestCase):
    def setUp(self):
        self.func, self.n, self.blocks, self.values = build_counting_loop()
        self.result = LiveVariables(record_history=True).run(self.func)

    def test_loop_carried_value_in_live_in(self):
        entry, loop, exit = self.blocks
        i, next, cond = self.values

        self.assertEqual(self.result.live_in(loop), {self.n, next})
        self.assertEqual(self.result.live_in(entry), {self.n})
        self.assertEqual(self.result.live_in(exit), {next})

    def test_back_edge_live_out(self):
        entry, loop, exit = self.blocks
        i, next, cond = self.values

        self.assertEqual(self.result.live_out(loop.terminator), {self.n, next})
        self.assertNotIn(i, self.result.live_out(loop.terminator))

    def test_terminates_within_bound(self):
        num_values = len(self.func.args) + len(self.func.insts)
        bound = len(self.func.bbs) * (num_values + 1) + 2

        self.assertLessEqual(self.result.passes, bound)
        self.assertEqual(self.result.passes, 3)

    def test_monotonic_history(self):
        history = self.result.history
        self.assertEqual(len(history), self.result.passes)

        for (prev_blocks, prev_insts), (next_blocks, next_insts) in zip(history, history[1:]):
            for bb, live in prev_blocks.items():
                self.assertLessEqual(live, next_blocks[bb])
            for inst, live in prev_insts.items():
                self.assertLessEqual(live, next_insts[inst])

        self.assertEqual(history[-1], history[-2])


class SelfReferentialLoopTest(TestCase):
    def test_phi_reading_itself_stays_live(self):
        func, (x, c), (entry, loop, exit), i = build_self_referential_loop()
        result = LiveVariables().run(func)

        self.assertIn(i, result.gen(i))
        self.assertIn(i, result.kill(i))
        self.assertIn(i, result.live_before(i))
        self.assertEqual(result.live_in(loop), {x, i, c})
        self.assertEqual(result.live_out(loop.terminator), {c, i})
        self.assertEqual(result.live_in(entry), {x, c})


class PropertyTest(TestCase):
    def functions(self):
        return [build_straight_line()[0], build_diamond()[0],
                build_counting_loop()[0], build_self_referential_loop()[0]]

    def test_transfer_soundness(self):
        for func in self.functions():
            result = LiveVariables().run(func)
            for inst in func.insts:
                live_before = result.live_before(inst)
                self.assertTrue(live_before.issuperset(result.gen(inst)))
                self.assertLessEqual(
                    live_before & result.kill(inst), result.gen(inst))

    def test_no_constants_or_labels_in_gen(self):
        for func in self.functions():
            result = LiveVariables().run(func)
            for inst in func.insts:
                for value in result.gen(inst):
                    self.assertNotIsInstance(value, (Constant, BasicBlock))

    def test_seeded_run_is_a_fixpoint(self):
        for func in self.functions():
            first = LiveVariables().run(func)
            second = LiveVariables().run(func, seed=first)

            self.assertEqual(second.passes, 1)
            self.assertEqual(second.snapshot(), first.snapshot())

    def test_runs_do_not_share_state(self):
        func = build_counting_loop()[0]
        analysis = LiveVariables()

        first = analysis.run(func)
        second = analysis.run(func)

        self.assertEqual(first.snapshot(), second.snapshot())
        self.assertEqual(first.passes, second.passes)

    def test_result_sets_are_not_shared(self):
        func, (x, y, p), (a, store, ret) = build_straight_line()
        entry = func.entry_block
        result = LiveVariables().run(func)

        result.live_out(ret).add(x)
        result.live_out(store).add(y)
        result.live_before(a).add(a)

        self.assertEqual(result.live_out(entry), set())
        self.assertEqual(result.live_before(ret), set())
        self.assertEqual(result.live_in(entry), {x, y, p})

        second = LiveVariables().run(func, seed=result)
        self.assertEqual(second.live_out(entry), set())

    def test_declaration_has_no_blocks(self):
        func, _ = make_function("decl", [("x", i32)])
        result = LiveVariables().run(func)

        self.assertEqual(result.passes, 0)
        self.assertEqual(result.block_live_in, {})


class DeadDefinitionTest(TestCase):
    def test_unused_result_is_reported(self):
        func, (x,) = make_function("dead", [("x", i32)], i32)
        entry = BasicBlock(func, name="entry")
        unused = BinaryInst(entry, "add", x, x, name="unused")
        used = BinaryInst(entry, "mul", x, x, name="used")
        ReturnInst(entry, used)

        result = LiveVariables().run(func)

        self.assertEqual(result.dead_definitions(), [unused])
        self.assertFalse(result.is_live_out(unused, unused))
        self.assertTrue(result.is_live_out(used, used))


class MalformedFunctionTest(TestCase):
    def test_missing_terminator(self):
        func, (x,) = make_function("noterm", [("x", i32)])
        entry = BasicBlock(func, name="entry")
        BinaryInst(entry, "add", x, x)

        with self.assertRaises(MalformedFunctionError):
            LiveVariables().run(func)

    def test_empty_block(self):
        func, _ = make_function("empty", [])
        BasicBlock(func, name="entry")

        with self.assertRaises(MalformedFunctionError):
            LiveVariables().run(func)

    def test_terminator_in_the_middle(self):
        func, (x,) = make_function("midterm", [("x", i32)])
        entry = BasicBlock(func, name="entry")
        ReturnInst(entry)
        BinaryInst(entry, "add", x, x)
        ReturnInst(entry)

        with self.assertRaises(MalformedFunctionError):
            LiveVariables().run(func)

    def test_branch_to_foreign_block(self):
        func, _ = make_function("caller", [])
        other, _ = make_function("other", [])
        foreign = BasicBlock(other, name="foreign")
        ReturnInst(foreign)

        entry = BasicBlock(func, name="entry")
        JumpInst(entry, foreign)

        with self.assertRaises(MalformedFunctionError):
            LiveVariables().run(func)

    def test_phi_after_non_phi(self):
        func, (x,) = make_function("latephi", [("x", i32)], i32)
        entry = BasicBlock(func, name="entry")
        body = BasicBlock(func, name="body")
        JumpInst(entry, body)
        y = BinaryInst(body, "add", x, x)
        PHINode(body, i32, [(x, entry)])
        ReturnInst(body, y)

        with self.assertRaises(MalformedFunctionError):
            LiveVariables().run(func)

    def test_phi_from_non_predecessor(self):
        func, (x,) = make_function("badphi", [("x", i32)], i32)
        entry = BasicBlock(func, name="entry")
        body = BasicBlock(func, name="body")
        stray = BasicBlock(func, name="stray")
        JumpInst(entry, body)
        phi = PHINode(body, i32, [(x, entry), (x, stray)])
        ReturnInst(body, phi)
        ReturnInst(stray)

        with self.assertRaises(MalformedFunctionError):
            LiveVariables().run(func)

    def test_is_a_value_error(self):
        self.assertTrue(issubclass(MalformedFunctionError, ValueError))


class ReportTest(TestCase):
    def test_straight_line_report(self):
        func, _, _ = build_straight_line()
        result = LiveVariables().run(func)

        expected = "\n".join([
            "BB: entry",
            "{%p, %a}",
            "%a = add i32 %x, %y",
            "{}",
            "store i32 %a, i32* %p",
            "{}",
            "ret void",
            "{%p, %x, %y}",
        ])
        self.assertEqual(print_liveness(func, result), expected)

    def test_diamond_report_lists_blocks_in_program_order(self):
        func, _, _, _ = build_diamond()
        result = LiveVariables().run(func)

        lines = print_liveness(func, result).split("\n")
        labels = [line for line in lines if line.startswith("BB: ")]

        self.assertEqual(labels, ["BB: b1", "BB: b2", "BB: b3", "BB: b4"])
        self.assertIn("%m = phi i32 [ %v2, %b2 ], [ %v3, %b3 ]", lines)
        self.assertIn("br i1 %c, label %b2, label %b3", lines)


if __name__ == '__main__':
    main()
