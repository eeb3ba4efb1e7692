"""
Unit tests for application configuration.
"""

import os
import unittest
from pathlib import Path
from unittest.mock import patch

from clinxr.core import config
from clinxr.core.selection import SceneTarget


class TestConfig(unittest.TestCase):
    """Test cases for global configuration constants."""

    def test_every_backend_has_env_var_and_default(self):
        for name in config.BACKEND_NAMES:
            self.assertIn(name, config.BACKEND_URL_ENV_VARS)
            self.assertTrue(config.DEFAULT_BACKEND_URLS[name].startswith("http"))

    def test_scene_targets_have_nodes(self):
        """Every selectable scene has a node id and position."""
        for target in SceneTarget:
            node_id, coords = config.SCENE_TARGET_NODES[target.value]
            self.assertTrue(node_id.endswith("-box"))
            self.assertEqual(len(coords), 3)

    def test_storage_path_override(self):
        with patch.dict(os.environ, {"CLINXR_STORAGE_PATH": "~/custom.json"}):
            self.assertEqual(config.storage_path(), Path("~/custom.json").expanduser())
        with patch.dict(os.environ, {"CLINXR_STORAGE_PATH": ""}):
            self.assertEqual(config.storage_path(), config.DEFAULT_STORAGE_PATH)


if __name__ == "__main__":
    unittest.main()
