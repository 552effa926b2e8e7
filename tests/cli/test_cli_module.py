# SPDX-FileCopyrightText: 2025-2026 Jiri Vyskocil <jiri@vyskocil.com>
#
# SPDX-License-Identifier: Apache-2.0

import importlib
import unittest


class CliModuleTests(unittest.TestCase):
    def test_cli_main_is_callable(self) -> None:
        module = importlib.import_module("runnerctl.cli.main")
        self.assertTrue(callable(getattr(module, "main", None)))

    def test_module_entry_point_reexports_main(self) -> None:
        entry = importlib.import_module("runnerctl.cli.__main__")
        module = importlib.import_module("runnerctl.cli.main")
        self.assertIs(entry.main, module.main)
