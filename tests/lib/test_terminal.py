import os
import unittest
import unittest.mock

from runnerctl.ui_utils.terminal import color, confirm, is_confirmation, supports_color


class ConfirmTests(unittest.TestCase):
    def test_only_yes_or_y_confirms(self) -> None:
        cases = {
            "yes": True,
            "Y": True,
            " y ": True,
            "no": False,
            "n": False,
            "": False,
            "sure": False,
            None: False,
        }
        for answer, expected in cases.items():
            with self.subTest(answer=answer):
                self.assertEqual(is_confirmation(answer), expected)

    def test_confirm_reads_stdin(self) -> None:
        with unittest.mock.patch("builtins.input", return_value="yes") as prompt:
            self.assertTrue(confirm("Remove all 2 image(s)?"))
        prompt.assert_called_once_with("Remove all 2 image(s)? (yes/no): ")

    def test_eof_cancels(self) -> None:
        with unittest.mock.patch("builtins.input", side_effect=EOFError):
            self.assertFalse(confirm("Remove?"))


class ColorTests(unittest.TestCase):
    def test_no_color_wins(self) -> None:
        with unittest.mock.patch.dict(os.environ, {"NO_COLOR": "1", "FORCE_COLOR": "1"}):
            self.assertFalse(supports_color())

    def test_force_color(self) -> None:
        with unittest.mock.patch.dict(os.environ, {"FORCE_COLOR": "1"}):
            os.environ.pop("NO_COLOR", None)
            self.assertTrue(supports_color())

    def test_color_disabled_returns_text(self) -> None:
        self.assertEqual(color("x", "31", False), "x")
        self.assertEqual(color("x", "31", True), "\x1b[31mx\x1b[0m")
