"""Behavioral tests for the keystroke-driven ExpressionEngine."""

import json
import math
import unittest

import pytest

from keycalc_pkg.engine import ExpressionEngine
from keycalc_pkg.formatter import NumberFormatter
from keycalc_pkg.history import HistoryStore, InMemoryHistoryStore
from keycalc_pkg.keys import parse_key_sequence, run_events
from keycalc_pkg.types import AngleMode, CalculationHistoryEntry, CalculatorMode, ValidationError


class RecordingHistoryStore(HistoryStore):
    """Fake store that records appends."""

    def __init__(self):
        self.appended = []

    def append(self, expression, result):
        self.appended.append((expression, result))
        return CalculationHistoryEntry(expression, result)

    def load_all(self):
        return [CalculationHistoryEntry(e, r) for e, r in reversed(self.appended)]

    def clear(self):
        self.appended.clear()


def make_engine(**kwargs):
    kwargs.setdefault("formatter", NumberFormatter(decimal_separator="."))
    kwargs.setdefault("history_store", InMemoryHistoryStore())
    kwargs.setdefault("angle_mode", AngleMode.RADIANS)
    kwargs.setdefault("unparsable_policy", "ignore")
    return ExpressionEngine(**kwargs)


def press(engine, keys):
    return run_events(engine, parse_key_sequence(keys))


class TestBasicArithmetic(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine()

    def test_addition(self):
        press(self.engine, "7 + 8 =")
        self.assertEqual(self.engine.display_value, "15")
        self.assertEqual(self.engine.formula_history_line, "7 + 8")
        self.assertEqual(self.engine.input_formula, "")

    def test_division(self):
        press(self.engine, "10 ÷ 4 =")
        self.assertEqual(self.engine.display_value, "2.5")

    def test_live_formula(self):
        press(self.engine, "7 + 8")
        self.assertEqual(self.engine.input_formula, "7 + 8")
        self.assertEqual(self.engine.display_value, "8")

    def test_multi_digit_numbers(self):
        press(self.engine, "12 × 12 =")
        self.assertEqual(self.engine.display_value, "144")

    def test_left_to_right_chaining(self):
        press(self.engine, "2 + 3 × 4 =")
        self.assertEqual(self.engine.display_value, "20")

    def test_operator_pressed_twice_replaces(self):
        press(self.engine, "5 + × 3 =")
        self.assertEqual(self.engine.display_value, "15")

    def test_decimal_input(self):
        press(self.engine, "0.5 + .25 =")
        self.assertEqual(self.engine.display_value, "0.75")

    def test_second_decimal_point_ignored(self):
        press(self.engine, "1 . . 5")
        self.assertEqual(self.engine.display_value, "1.5")

    def test_leading_zeros_collapse(self):
        press(self.engine, "0 0 7")
        self.assertEqual(self.engine.display_value, "7")

    def test_repeated_equals(self):
        press(self.engine, "5 + 3 =")
        self.assertEqual(self.engine.display_value, "8")
        press(self.engine, "=")
        self.assertEqual(self.engine.display_value, "11")
        self.assertEqual(self.engine.formula_history_line, "8 + 3")

    def test_result_kept_at_full_precision(self):
        press(self.engine, "1 ÷ 3 = × 3 =")
        self.assertEqual(self.engine.display_value, "1")

    def test_digit_after_result_starts_new_number(self):
        press(self.engine, "7 + 8 = 2")
        self.assertEqual(self.engine.display_value, "2")
        self.assertEqual(self.engine.input_formula, "2")

    def test_invalid_digit_raises(self):
        with self.assertRaises(ValueError):
            self.engine.input_digit_or_decimal("a")

    def test_unknown_operator_raises(self):
        with self.assertRaises(ValidationError):
            self.engine.input_operator("^")

    def test_static_binary_op(self):
        self.assertEqual(ExpressionEngine.perform_binary_op("×", 6, 7), 42)


class TestDivisionByZeroAndClear(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine()

    def test_division_by_zero_shows_error(self):
        press(self.engine, "5 ÷ 0 =")
        self.assertEqual(self.engine.display_value, "Error")
        self.assertTrue(math.isnan(self.engine.last_result))

    def test_clear_after_error(self):
        press(self.engine, "5 ÷ 0 = AC")
        self.assertEqual(self.engine.display_value, "0")
        self.assertEqual(self.engine.input_formula, "")
        self.assertIsNone(self.engine.last_result)

    def test_digit_after_error(self):
        press(self.engine, "5 ÷ 0 = 7")
        self.assertEqual(self.engine.display_value, "7")

    def test_clear_is_idempotent(self):
        press(self.engine, "1 + 2 AC")
        once = self.engine.snapshot()
        press(self.engine, "AC")
        self.assertEqual(self.engine.snapshot(), once)

    def test_clear_keeps_memory_and_angle(self):
        press(self.engine, "5 m+ Deg AC")
        self.assertEqual(self.engine.memory_register, 5.0)
        self.assertIs(self.engine.angle_mode, AngleMode.DEGREES)


class TestUnaryKeys(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine()

    def test_toggle_sign(self):
        press(self.engine, "5 +/-")
        self.assertEqual(self.engine.display_value, "-5")
        press(self.engine, "+/-")
        self.assertEqual(self.engine.display_value, "5")

    def test_percentage(self):
        press(self.engine, "50 %")
        self.assertEqual(self.engine.display_value, "0.5")

    def test_percentage_as_second_operand(self):
        press(self.engine, "2 + 50 % =")
        self.assertEqual(self.engine.display_value, "2.5")

    def test_sign_inside_group(self):
        press(self.engine, "( 5 +/-")
        self.assertEqual(self.engine.display_value, "(-5")


class TestBrackets:
    def test_group_times_number(self):
        engine = make_engine()
        press(engine, "( 2 + 3 ) × 4 =")
        assert engine.display_value == "20"
        assert engine.formula_history_line == "(2 + 3) × 4"

    def test_glued_key_sequence(self):
        engine = make_engine()
        press(engine, "(2+3)×4=")
        assert engine.display_value == "20"

    def test_nested_groups_with_toggle_key(self):
        engine = make_engine()
        press(engine, "() () 1 + 2 () × () 3 + 4 () () =")
        assert engine.display_value == "21"
        assert engine.formula_history_line == "((1 + 2) × (3 + 4))"

    def test_toggle_closes_then_collapses(self):
        engine = make_engine()
        press(engine, "() 2 + 3 ()")
        assert engine.display_value == "5"
        assert engine.input_formula == "(2 + 3)"

    def test_unclosed_group_auto_closes_on_equals(self):
        engine = make_engine()
        press(engine, "( 3 + 4 =")
        assert engine.display_value == "7"

    def test_precedence_inside_group(self):
        engine = make_engine()
        press(engine, "( 2 + 3 × 4 ) =")
        assert engine.display_value == "14"

    def test_group_as_second_operand(self):
        engine = make_engine()
        press(engine, "2 × ( 3 + 4 )")
        assert engine.display_value == "7"
        assert engine.input_formula == "2 × (3 + 4)"
        press(engine, "=")
        assert engine.display_value == "14"

    def test_implicit_multiplication_before_group(self):
        engine = make_engine()
        press(engine, "3 ( 4 ) =")
        assert engine.display_value == "12"

    def test_group_after_operand_keeps_multiplying(self):
        engine = make_engine()
        press(engine, "2 ( 3 ) 4")
        assert engine.display_value == "2 × (3) × 4"
        press(engine, "=")
        assert engine.display_value == "24"

    def test_digit_after_collapsed_group_starts_new_operand(self):
        engine = make_engine()
        press(engine, "( 2 + 3 ) 4")
        assert engine.display_value == "4"
        assert engine.input_formula == "4"
        press(engine, "=")
        assert engine.display_value == "4"
        assert engine.load_history() == []

    def test_group_after_collapsed_group_replaces_operand(self):
        engine = make_engine()
        press(engine, "5 + ( 2 ) ( 3 )")
        assert engine.input_formula == "5 + (3)"
        press(engine, "=")
        assert engine.display_value == "8"

    def test_division_by_zero_in_group(self):
        engine = make_engine()
        press(engine, "( 1 ÷ 0 )")
        assert engine.display_value == "Error"

    def test_division_by_zero_in_group_on_equals(self):
        engine = make_engine()
        press(engine, "( 1 ÷ 0 =")
        assert engine.display_value == "Error"
        assert engine.load_history()[0].result == "Error"

    def test_negative_group_factorial(self):
        engine = make_engine()
        press(engine, "( - 5 ) x!")
        assert engine.display_value == "Error"

    def test_formula_segments(self):
        engine = make_engine()
        press(engine, "( 2 + 3")
        assert engine.snapshot()["formula_segments"] == [("(", 0), ("2 + 3", 1)]


class TestScientificFunctions:
    def test_sine_in_degrees(self):
        engine = make_engine()
        press(engine, "Deg 90 sin")
        assert engine.display_value == "1"
        assert engine.formula_history_line == "sin(90)"

    def test_cosine_in_radians(self):
        engine = make_engine()
        press(engine, "0 cos")
        assert engine.display_value == "1"

    def test_common_log(self):
        engine = make_engine()
        press(engine, "100 log")
        assert engine.display_value == "2"

    def test_factorial(self):
        engine = make_engine()
        press(engine, "5 x!")
        assert engine.display_value == "120"
        assert engine.formula_history_line == "5!"

    def test_negative_factorial(self):
        engine = make_engine()
        press(engine, "5 +/- x!")
        assert engine.display_value == "Error"

    def test_square_root_of_negative(self):
        engine = make_engine()
        press(engine, "4 +/- √")
        assert engine.display_value == "Error"

    def test_function_result_as_second_operand(self):
        engine = make_engine()
        press(engine, "2 + 3 x² =")
        assert engine.display_value == "11"

    def test_unknown_function_is_ignored(self):
        engine = make_engine()
        press(engine, "9")
        engine.handle_scientific_function("sinh")
        assert engine.display_value == "9"

    def test_angle_toggle(self):
        engine = make_engine()
        engine.toggle_angle_mode()
        assert engine.angle_mode is AngleMode.DEGREES
        engine.set_angle_mode("rad")
        assert engine.angle_mode is AngleMode.RADIANS


class TestMemory:
    def test_memory_accumulates(self):
        engine = make_engine()
        press(engine, "5 m+ 3 m+ mr")
        assert engine.display_value == "8"
        assert engine.memory_register == 8.0

    def test_memory_subtract_and_clear(self):
        engine = make_engine()
        press(engine, "2 m-")
        assert engine.memory_register == -2.0
        press(engine, "mc")
        assert engine.memory_register == 0.0

    def test_recall_as_second_operand(self):
        engine = make_engine()
        press(engine, "2 m+ AC 3 + mr =")
        assert engine.display_value == "5"

    def test_memory_add_with_pending_operator(self):
        engine = make_engine()
        press(engine, "2 + 3 m+ × 4 =")
        assert engine.display_value == "20"
        assert engine.memory_register == 3.0


class TestConstantsAndAns:
    def test_pi(self):
        engine = make_engine()
        press(engine, "π")
        assert engine.display_value == "3.141592653589793"

    def test_constant_as_second_operand(self):
        engine = make_engine()
        press(engine, "2 × π =")
        assert float(engine.display_value) == pytest.approx(2 * math.pi)

    def test_ans_recalls_last_result(self):
        engine = make_engine()
        press(engine, "7 + 8 = + Ans =")
        assert engine.display_value == "30"

    def test_ans_without_result_is_noop(self):
        engine = make_engine()
        press(engine, "Ans")
        assert engine.display_value == "0"


class TestPolicies:
    def test_unparsable_operand_ignored(self):
        engine = make_engine(unparsable_policy="ignore")
        press(engine, "( 2 + sin")
        assert engine.display_value == "(2 + "

    def test_unparsable_operand_read_as_zero(self):
        engine = make_engine(unparsable_policy="zero")
        press(engine, "( 2 + cos")
        assert engine.display_value == "1"

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError):
            make_engine(unparsable_policy="explode")

    def test_enforced_basic_mode_blocks_functions(self):
        engine = make_engine(enforce_mode=True)
        press(engine, "9 √")
        assert engine.display_value == "9"
        engine.switch_mode(CalculatorMode.SCIENTIFIC)
        press(engine, "√")
        assert engine.display_value == "3"

    def test_comma_decimal_separator(self):
        engine = make_engine(formatter=NumberFormatter(decimal_separator=","))
        press(engine, "1 . 5 + 1 =")
        assert engine.display_value == "2,5"


class TestHistory:
    def test_results_recorded(self):
        store = RecordingHistoryStore()
        engine = make_engine(history_store=store)
        press(engine, "7 + 8 =")
        assert store.appended == [("7 + 8", "15")]

    def test_bracketed_expression_recorded(self):
        store = RecordingHistoryStore()
        engine = make_engine(history_store=store)
        press(engine, "( 2 + 3 ) × 4 =")
        assert store.appended == [("(2 + 3) × 4", "20")]

    def test_scientific_function_not_recorded(self):
        store = RecordingHistoryStore()
        engine = make_engine(history_store=store)
        press(engine, "5 x!")
        assert store.appended == []

    def test_load_newest_first_and_clear(self):
        engine = make_engine()
        press(engine, "1 + 1 = 2 + 2 =")
        history = engine.load_history()
        assert [entry.expression for entry in history] == ["2 + 2", "1 + 1"]
        engine.clear_history()
        assert engine.load_history() == []


class TestSnapshot:
    def test_snapshot_is_json_serializable(self):
        engine = make_engine()
        press(engine, "7 +")
        snapshot = engine.snapshot()
        assert snapshot["display"] == "7"
        assert snapshot["pending_operator"] == "+"
        assert snapshot["angle_mode"] == "rad"
        assert snapshot["mode"] == "basic"
        json.dumps(snapshot)
