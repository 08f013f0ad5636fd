"""
Tests for the Expression token store: entry rules, feet handling, deletion,
repeat and the history line.
"""

import unittest

from expression import Expression, fraction_value, is_typed_fraction
from token_types import Operand, Operator


def _type(expr, keys):
    """Feed a key string: digits, '.', operators and 'F' for the feet key."""
    for k in keys:
        if k.isdigit():
            expr.append_digit(k)
        elif k == ".":
            expr.append_decimal_point()
        elif k == "F":
            expr.commit_feet()
        elif k != " ":
            expr.apply_operator(k)


class TestEntry(unittest.TestCase):

    def setUp(self):
        self.e = Expression()

    def test_starts_empty(self):
        self.assertTrue(self.e.is_empty)
        self.assertIsNone(self.e.live_operand())
        self.assertEqual(self.e.render_history_text(), "")

    def test_digits_accumulate_in_entry(self):
        _type(self.e, "12.5")
        self.assertEqual(self.e.current_entry, "12.5")
        self.assertEqual(self.e.tokens, [])

    def test_second_decimal_point_ignored(self):
        _type(self.e, "1.2.")
        self.assertEqual(self.e.current_entry, "1.2")

    def test_leading_decimal_point(self):
        self.e.append_decimal_point()
        self.assertEqual(self.e.current_entry, "0.")

    def test_fraction_after_whole_becomes_mixed_operand(self):
        _type(self.e, "1")
        self.e.append_fraction(1, 2)
        self.assertEqual(self.e.tokens, [Operand("1.5", "1 1/2")])
        self.assertEqual(self.e.current_entry, "")

    def test_fraction_alone_is_typed_fraction(self):
        self.e.append_fraction(3, 8)
        self.assertEqual(self.e.current_entry, "3/8")
        self.assertEqual(self.e.live_operand(), Operand("0.375", "3/8"))

    def test_fraction_after_decimal_adds(self):
        _type(self.e, "2.5")
        self.e.append_fraction(1, 4)
        self.assertEqual(self.e.tokens, [Operand("2.5"), Operator("+")])
        self.assertEqual(self.e.current_entry, "1/4")

    def test_typed_fraction_helpers(self):
        self.assertTrue(is_typed_fraction("3/8"))
        self.assertFalse(is_typed_fraction("3"))
        self.assertEqual(fraction_value("-1/4"), -0.25)
        self.assertIsNone(fraction_value("1/0"))


class TestOperators(unittest.TestCase):

    def setUp(self):
        self.e = Expression()

    def test_leading_operator_only_minus(self):
        self.assertFalse(self.e.apply_operator("+"))
        self.assertTrue(self.e.apply_operator("-"))
        self.assertEqual(self.e.tokens, [Operator("-")])

    def test_leading_minus_not_replaced_by_other_operator(self):
        self.e.apply_operator("-")
        self.assertFalse(self.e.apply_operator("*"))
        self.assertEqual(self.e.tokens, [Operator("-")])

    def test_trailing_operator_replaced(self):
        _type(self.e, "5+*")
        self.assertEqual(self.e.tokens, [Operand("5"), Operator("*")])

    def test_operator_commits_entry(self):
        _type(self.e, "5+3")
        self.assertEqual(self.e.tokens, [Operand("5"), Operator("+")])
        self.assertEqual(self.e.current_entry, "3")

    def test_unknown_operator(self):
        with self.assertRaises(ValueError):
            self.e.apply_operator("%")

    def test_operator_flattens_measure(self):
        _type(self.e, "1F6+")
        self.assertEqual(self.e.tokens, [Operand("18", "1′ 6″"), Operator("+")])
        self.assertFalse(self.e.measure.active)


class TestFeet(unittest.TestCase):

    def setUp(self):
        self.e = Expression()

    def test_whole_starts_measure(self):
        _type(self.e, "2F")
        self.assertTrue(self.e.measure.active)
        self.assertEqual(self.e.live_operand(), Operand("24", "2′"))

    def test_feet_while_measure_active_is_noop(self):
        _type(self.e, "2F")
        self.assertFalse(self.e.commit_feet())

    def test_decimal_feet(self):
        _type(self.e, "2.5F")
        self.assertEqual(self.e.tokens, [Operand("30", "2.5′")])

    def test_typed_fraction_feet(self):
        self.e.append_fraction(3, 8)
        self.assertTrue(self.e.commit_feet())
        self.assertEqual(self.e.tokens, [Operand("4.5", "3/8′")])

    def test_mixed_operand_reinterpreted_as_feet(self):
        _type(self.e, "1")
        self.e.append_fraction(1, 2)
        self.assertTrue(self.e.commit_feet())
        self.assertEqual(self.e.tokens, [Operand("18", "1 1/2′")])

    def test_plain_operand_not_reinterpreted(self):
        _type(self.e, "5+")
        self.assertFalse(self.e.commit_feet())

    def test_nothing_to_convert(self):
        self.assertFalse(self.e.commit_feet())


class TestDeletion(unittest.TestCase):

    def setUp(self):
        self.e = Expression()

    def test_backspace_entry(self):
        _type(self.e, "12")
        self.e.backspace_char()
        self.assertEqual(self.e.current_entry, "1")

    def test_backspace_typed_fraction_clears_it(self):
        self.e.append_fraction(3, 8)
        self.e.backspace_char()
        self.assertEqual(self.e.current_entry, "")

    def test_backspace_operator_then_operand(self):
        _type(self.e, "25+")
        self.e.backspace_char()
        self.assertEqual(self.e.tokens, [Operand("25")])
        self.e.backspace_char()
        self.assertEqual(self.e.tokens, [Operand("2")])
        self.e.backspace_char()
        self.assertEqual(self.e.tokens, [])

    def test_backspace_operand_drops_display(self):
        _type(self.e, "1")
        self.e.append_fraction(1, 2)
        self.e.backspace_char()
        self.assertEqual(self.e.tokens, [Operand("1.")])

    def test_backspace_through_negative_operand_drops_it(self):
        self.e.replace_all(-10)
        self.e.backspace_char()
        self.assertEqual(self.e.tokens, [Operand("-1")])
        self.e.backspace_char()
        self.assertEqual(self.e.tokens, [])
        self.assertEqual(self.e.render_history_text(), "")

        snap = self.e.snapshot()
        again = Expression()
        again.load(snap["tokens"], snap["displays"])
        self.assertEqual(again.tokens, self.e.tokens)

    def test_backspace_on_empty_is_noop(self):
        self.e.backspace_char()
        self.assertTrue(self.e.is_empty)

    def test_remove_last_term_pair_committed(self):
        _type(self.e, "5+3*2")
        self.e.commit_current_entry()
        self.e.remove_last_term_pair()
        self.assertEqual(self.e.tokens, [Operand("5"), Operator("+"), Operand("3")])

    def test_remove_last_term_pair_live_entry(self):
        _type(self.e, "5+3")
        self.e.remove_last_term_pair()
        self.assertEqual(self.e.tokens, [Operand("5")])
        self.assertEqual(self.e.current_entry, "")

    def test_remove_last_term_pair_live_measure(self):
        _type(self.e, "5+1F6")
        self.e.remove_last_term_pair()
        self.assertEqual(self.e.tokens, [Operand("5")])
        self.assertFalse(self.e.measure.active)

    def test_clear(self):
        _type(self.e, "5+1F")
        self.e.clear()
        self.assertTrue(self.e.is_empty)


class TestInsertAndReplace(unittest.TestCase):

    def setUp(self):
        self.e = Expression()

    def test_insert_into_empty(self):
        self.assertTrue(self.e.insert_value(2.5, display="2 1/2"))
        self.assertEqual(self.e.live_operand(), Operand("2.5", "2 1/2"))

    def test_insert_commits_existing_entry(self):
        _type(self.e, "7")
        self.e.insert_value(3)
        self.assertEqual(self.e.tokens, [Operand("7")])
        self.assertEqual(self.e.current_entry, "3")

    def test_insert_replacing_entry(self):
        _type(self.e, "7")
        self.e.insert_value(2.5, replace_existing=True)
        self.assertEqual(self.e.tokens, [])
        self.assertEqual(self.e.current_entry, "2.5")

    def test_insert_replacing_trailing_operand(self):
        _type(self.e, "5+3*")
        self.e.backspace_char()
        self.e.insert_value(2, replace_existing=True, display="2")
        self.assertEqual(self.e.tokens, [Operand("5"), Operator("+"), Operand("2", "2")])

    def test_insert_rejects_non_finite(self):
        self.assertFalse(self.e.insert_value(float("nan")))
        self.assertFalse(self.e.insert_value(None))

    def test_replace_all_inch(self):
        _type(self.e, "5+3")
        self.e.replace_all(18.5)
        self.assertEqual(self.e.tokens, [Operand("18.5", "18 1/2″")])
        self.assertEqual(self.e.current_entry, "")

    def test_replace_all_feet_strips_arrow(self):
        self.e.replace_all(18.5, "feet")
        self.assertEqual(self.e.tokens, [Operand("18.5", "1′ 6 1/2″")])
        self.e.replace_all(10 / 3)
        self.assertEqual(self.e.tokens[0].display, "3 5/16″")


class TestRepeat(unittest.TestCase):

    def setUp(self):
        self.e = Expression()

    def test_repeat_with_live_entry(self):
        _type(self.e, "5+3")
        self.assertTrue(self.e.can_repeat())
        self.assertTrue(self.e.repeat_last_operation())
        self.assertEqual(self.e.tokens, [Operand("5"), Operator("+"), Operand("3"),
                                         Operator("+"), Operand("3")])

    def test_repeat_committed_tail(self):
        _type(self.e, "5*2")
        self.e.commit_current_entry()
        self.e.repeat_last_operation()
        self.assertEqual(self.e.render_history_text(), "5 × 2 × 2")

    def test_nothing_to_repeat(self):
        self.assertFalse(self.e.repeat_last_operation())
        _type(self.e, "5")
        self.assertFalse(self.e.can_repeat())
        _type(self.e, "+")
        self.assertFalse(self.e.can_repeat())


class TestHistoryText(unittest.TestCase):

    def setUp(self):
        self.e = Expression()

    def test_simple(self):
        _type(self.e, "5+3")
        self.assertEqual(self.e.render_history_text(), "5 + 3")

    def test_trailing_operator(self):
        _type(self.e, "5+")
        self.assertEqual(self.e.render_history_text(), "5 +")

    def test_leading_minus_folded(self):
        _type(self.e, "-5")
        self.assertEqual(self.e.render_history_text(), "−5")

    def test_multiplicative_group_parenthesised_when_mixed(self):
        _type(self.e, "2+3*4")
        self.assertEqual(self.e.render_history_text(), "2 + (3 × 4)")

    def test_no_parentheses_without_mixing(self):
        _type(self.e, "3*4/2")
        self.assertEqual(self.e.render_history_text(), "3 × 4 ÷ 2")

    def test_inch_marks_added_when_feet_present(self):
        _type(self.e, "1F6+3")
        self.assertEqual(self.e.render_history_text(), "1′ 6″ + 3″")

    def test_adjacent_operands_spaced(self):
        self.e.replace_all(10 / 3)
        _type(self.e, "2+")
        self.assertEqual(self.e.render_history_text(), "3 5/16″ 2 +")

    def test_live_measure_shown(self):
        _type(self.e, "2F")
        self.assertEqual(self.e.render_history_text(), "2′")


class TestSnapshot(unittest.TestCase):

    def test_snapshot_includes_live_term(self):
        e = Expression()
        _type(e, "1F6+3")
        self.assertEqual(e.snapshot(), {
            "tokens": ["18", "+", "3"],
            "displays": ["1′ 6″", None, None],
        })

    def test_load_restores_tokens(self):
        e = Expression()
        e.load(["18", "+", "3"], ["1′ 6″", None, None])
        self.assertEqual(e.tokens, [Operand("18", "1′ 6″"), Operator("+"), Operand("3")])
        self.assertEqual(e.render_history_text(), "1′ 6″ + 3″")

    def test_load_tolerates_short_displays(self):
        e = Expression()
        e.load(["5", "*", "2"], None)
        self.assertEqual(e.render_history_text(), "5 × 2")


if __name__ == "__main__":
    unittest.main()
