"""
Tests for MeasureBuilder: compound feet + inch entry.
"""

import unittest

from measure_builder import MeasureBuilder, parse_entry
from token_types import Operand


class TestMeasureBuilder(unittest.TestCase):

    def setUp(self):
        self.mb = MeasureBuilder()

    def test_starts_inactive(self):
        self.assertFalse(self.mb.active)
        self.assertIsNone(self.mb.finalize())

    def test_feet_only(self):
        self.mb.start_feet(2)
        self.assertEqual(self.mb.display_label(), "2′")
        self.assertEqual(self.mb.total(), 24)

    def test_feet_and_typed_inches(self):
        self.mb.start_feet(1)
        self.mb.append_digit("6")
        self.assertEqual(self.mb.total(), 18)
        self.assertEqual(self.mb.finalize(), Operand("18", "1′ 6″"))
        self.assertFalse(self.mb.active)

    def test_fraction_folds_typed_inches(self):
        self.mb.start_feet(1)
        self.mb.append_digit("6")
        self.mb.append_fraction(1, 2)
        self.assertEqual(self.mb.in_entry, "")
        self.assertEqual(self.mb.inches, 6.5)
        self.assertEqual(self.mb.display_label(), "1′ 6 1/2″")
        self.assertEqual(self.mb.finalize(), Operand("18.5", "1′ 6 1/2″"))

    def test_fraction_without_typed_inches(self):
        self.mb.start_feet(3)
        self.mb.append_fraction(3, 4)
        self.assertEqual(self.mb.display_label(), "3′ 3/4″")

    def test_decimal_point(self):
        self.mb.start_feet(1)
        self.mb.append_decimal_point()
        self.assertEqual(self.mb.in_entry, "0.")
        self.mb.append_digit("5")
        self.mb.append_decimal_point()
        self.assertEqual(self.mb.in_entry, "0.5")
        self.assertEqual(self.mb.total(), 12.5)

    def test_backspace_sequence(self):
        self.mb.start_feet(1)
        self.mb.append_fraction(1, 2)
        self.mb.append_digit("3")
        self.mb.backspace()              # drops the typed 3
        self.assertEqual(self.mb.in_entry, "")
        self.assertEqual(self.mb.inches, 0.5)
        self.mb.backspace()              # drops the inches
        self.assertEqual(self.mb.inches, 0.0)
        self.assertTrue(self.mb.active)
        self.mb.backspace()              # drops the builder
        self.assertFalse(self.mb.active)

    def test_second_start_raises(self):
        self.mb.start_feet(1)
        with self.assertRaises(RuntimeError):
            self.mb.start_feet(2)

    def test_parse_entry_tolerates_junk(self):
        self.assertEqual(parse_entry(""), 0.0)
        self.assertEqual(parse_entry("."), 0.0)
        self.assertEqual(parse_entry("2.5"), 2.5)


if __name__ == "__main__":
    unittest.main()
