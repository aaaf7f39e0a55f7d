"""Regression tests for importing the data layer without the web stack."""

from __future__ import annotations

import importlib
import sys
import types
import unittest
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class CLIImportTests(unittest.TestCase):
    def tearDown(self) -> None:
        self._clear_portal_modules()

    @staticmethod
    def _clear_portal_modules() -> None:
        for name in [m for m in list(sys.modules.keys()) if m == "portal" or m.startswith("portal.")]:
            sys.modules.pop(name, None)

    def test_import_database_without_web_packages(self) -> None:
        """Importing portal.database should succeed even if fastapi and httpx are missing."""

        self._clear_portal_modules()

        saved: dict[str, types.ModuleType | None] = {}
        for blocked in ("fastapi", "httpx"):
            saved[blocked] = sys.modules.pop(blocked, None)
            sys.modules[blocked] = None
        try:
            database_module = importlib.import_module("portal.database")
            self.assertTrue(hasattr(database_module, "Database"))

            portal_module = sys.modules.get("portal")
            self.assertIsNotNone(portal_module)
            self.assertTrue(hasattr(portal_module, "Database"))
        finally:
            for blocked, module in saved.items():
                sys.modules.pop(blocked, None)
                if module is not None:
                    sys.modules[blocked] = module


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
