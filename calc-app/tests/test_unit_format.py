"""
Tests for unit_format: sixteenth snapping, rounding arrows, inch / feet
formatting and the mixed-string parser.
"""

import unittest

from unit_format import (
    ARROW_DOWN,
    ARROW_UP,
    Formatted,
    format_exact_decimal,
    format_feet,
    format_inch,
    format_label,
    number_text,
    parse_mixed_inch,
    pretty_op,
    reduce_fraction,
    rounding_arrow,
    snap_to_sixteenth,
)

_SAMPLES = [0.0, 0.03, 1 / 32, 3.3333, 10 / 3, 7.99, 18.5, 123.456, -7.2, -0.4, 5280 * 12]


class TestSnapping(unittest.TestCase):

    def test_snap_is_idempotent(self):
        for v in _SAMPLES:
            once = snap_to_sixteenth(v)
            self.assertEqual(snap_to_sixteenth(once), once)

    def test_snap_lands_on_sixteenths(self):
        for v in _SAMPLES:
            self.assertEqual((snap_to_sixteenth(v) * 16) % 1, 0)

    def test_exact_half_rounds_up(self):
        self.assertEqual(snap_to_sixteenth(1 / 32), 1 / 16)
        self.assertEqual(snap_to_sixteenth(-1 / 32), 0.0)

    def test_reduce_fraction(self):
        self.assertEqual(reduce_fraction(8, 16), (0, 1, 2))
        self.assertEqual(reduce_fraction(12, 16), (0, 3, 4))
        self.assertEqual(reduce_fraction(5, 16), (0, 5, 16))

    def test_reduce_fraction_carries_whole_unit(self):
        self.assertEqual(reduce_fraction(16, 16), (1, 0, 1))

    def test_reduce_zero(self):
        carry, n, _ = reduce_fraction(0, 16)
        self.assertEqual((carry, n), (0, 0))


class TestRoundingArrow(unittest.TestCase):

    def test_no_arrow_on_boundary(self):
        self.assertEqual(rounding_arrow(1.0, 1.0), "")
        self.assertEqual(rounding_arrow(1.0000005, 1.0), "")

    def test_up_when_exact_above_shown(self):
        self.assertEqual(rounding_arrow(1.01, 1.0), f"{ARROW_UP} ")

    def test_down_when_exact_below_shown(self):
        self.assertEqual(rounding_arrow(0.99, 1.0), f"{ARROW_DOWN} ")

    def test_arrow_rule_over_samples(self):
        for v in _SAMPLES:
            snapped = snap_to_sixteenth(v)
            fraction = format_inch(v).fraction
            if abs(v - snapped) < 1e-6:
                self.assertNotIn(ARROW_UP, fraction)
                self.assertNotIn(ARROW_DOWN, fraction)
            elif v > snapped:
                self.assertIn(ARROW_UP, fraction)
            else:
                self.assertIn(ARROW_DOWN, fraction)


class TestFormatInch(unittest.TestCase):

    def test_whole_number(self):
        self.assertEqual(format_inch(8), Formatted("8″", "8.0000″"))

    def test_ten_thirds_rounds_with_up_arrow(self):
        out = format_inch(10 / 3)
        self.assertEqual(out.fraction, "▴ 3 5/16″")
        self.assertEqual(out.decimal, "3.3333″")

    def test_negative_value_sign_before_core(self):
        self.assertEqual(format_inch(-2.5).fraction, "-2 1/2″")
        self.assertEqual(format_inch(-2.5).decimal, "-2.5000″")

    def test_negative_with_arrow(self):
        self.assertEqual(format_inch(-7.2).fraction, "-▾ 7 3/16″")

    def test_pure_fraction(self):
        self.assertEqual(format_inch(0.375).fraction, "3/8″")

    def test_small_value_snaps_to_zero_with_arrow(self):
        self.assertEqual(format_inch(0.03).fraction, "▴ 0″")

    def test_negative_zero_decimal_normalised(self):
        self.assertEqual(format_inch(-0.00001).decimal, "0.0000″")
        self.assertEqual(format_exact_decimal(-0.0), "0.0000")

    def test_carry_into_whole_inch(self):
        self.assertEqual(format_inch(7.99).fraction, "▾ 8″")

    def test_decimal_parses_back(self):
        for v in _SAMPLES:
            text = format_inch(v).decimal.rstrip("″")
            self.assertAlmostEqual(float(text), v, delta=1e-4)

    def test_sign_follows_snapped_value(self):
        self.assertEqual(format_feet(-0.01).fraction, "▾ 0′")
        self.assertEqual(format_inch(-0.01).fraction, "▾ 0″")

    def test_fraction_parses_to_snapped_value(self):
        for v in _SAMPLES:
            parsed = parse_mixed_inch(format_inch(v).fraction)
            self.assertIsNotNone(parsed, v)
            self.assertAlmostEqual(parsed, snap_to_sixteenth(v), delta=1e-9)


class TestFormatFeet(unittest.TestCase):

    def test_feet_and_inches(self):
        self.assertEqual(format_feet(18), Formatted("1′ 6″", "1.5000′"))

    def test_whole_feet_omit_inches(self):
        self.assertEqual(format_feet(24).fraction, "2′")

    def test_rounding_up_to_a_foot(self):
        self.assertEqual(format_feet(11.99).fraction, "▾ 1′")

    def test_negative(self):
        out = format_feet(-18.5)
        self.assertEqual(out.fraction, "-1′ 6 1/2″")
        self.assertEqual(out.decimal, "-1.5417′")

    def test_fraction_parses_to_snapped_value(self):
        for v in (18, 18.5, 30.3, 100.01):
            self.assertAlmostEqual(parse_mixed_inch(format_feet(v).fraction),
                                   snap_to_sixteenth(v), delta=1e-9)


class TestLabelsAndText(unittest.TestCase):

    def test_label_drops_arrow_and_inch_mark(self):
        self.assertEqual(format_label(10 / 3), "3 5/16")
        self.assertEqual(format_label(2), "2")

    def test_number_text(self):
        self.assertEqual(number_text(18.0), "18")
        self.assertEqual(number_text(1.5), "1.5")
        self.assertEqual(number_text(-0.0), "0")
        self.assertEqual(number_text(0.1 + 0.2), repr(0.1 + 0.2))

    def test_pretty_op(self):
        self.assertEqual(pretty_op("*"), "×")
        self.assertEqual(pretty_op("/"), "÷")
        self.assertEqual(pretty_op("-"), "−")
        self.assertEqual(pretty_op("+"), "+")


class TestParseMixedInch(unittest.TestCase):

    def test_accepted_forms(self):
        cases = {
            "1 11/32": 1 + 11 / 32,
            "2 1/2″": 2.5,
            "19/32″": 19 / 32,
            "1′ 6″": 18.0,
            "1′ 6 1/2″": 18.5,
            "1' 6\"": 18.0,
            "▾ 3 5/16″": 3.3125,
            "-2 1/2″": -2.5,
            "12": 12.0,
            "2′": 24.0,
        }
        for text, expected in cases.items():
            self.assertAlmostEqual(parse_mixed_inch(text), expected, msg=text)

    def test_rejects_garbage(self):
        for text in ("", None, "abc", "1/0", "1 2 3"):
            self.assertIsNone(parse_mixed_inch(text), text)


if __name__ == "__main__":
    unittest.main()
