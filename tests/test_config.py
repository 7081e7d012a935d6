"""
Tests for EmbeddingPolicy and AppConfig

Tests:
1. Default extension and ignored-directory lists
2. Path filtering (ignored components, extension allow-list)
3. Language mapping for the splitter and the editor
4. Validation of debounce and concurrency values
5. AppConfig loading from JSON and YAML
"""

import json
import os
import shutil
import tempfile
import unittest

from editor_rag.config.app import AppConfig
from editor_rag.config.policy import EmbeddingPolicy, ui_language_for


class TestEmbeddingPolicy(unittest.TestCase):
    """Which files the pipeline embeds"""

    def setUp(self):
        self.policy = EmbeddingPolicy()

    def test_defaults(self):
        self.assertIn('.ts', self.policy.extensions)
        self.assertIn('.sol', self.policy.extensions)
        self.assertIn('node_modules', self.policy.ignored_directories)
        self.assertEqual(self.policy.debounce_seconds, 5.0)
        self.assertEqual(self.policy.max_concurrency, 1)

    def test_ignored_directory_component(self):
        self.assertTrue(self.policy.should_ignore('/proj/node_modules/x/index.js'))
        self.assertTrue(self.policy.should_ignore('/proj/.git/config.json'))
        # Component match, not substring
        self.assertFalse(self.policy.should_ignore('/proj/my_node_modules_notes/a.js'))

    def test_extension_allow_list(self):
        self.assertFalse(self.policy.should_ignore('/proj/src/a.ts'))
        self.assertTrue(self.policy.should_ignore('/proj/image.png'))
        self.assertTrue(self.policy.should_ignore('/proj/Makefile'))
        self.assertFalse(self.policy.should_ignore('/proj/README.MD'))

    def test_add_and_remove(self):
        self.policy.add_ignored_directory('vendor')
        self.assertTrue(self.policy.should_ignore('/proj/vendor/lib.go'))
        self.assertTrue(self.policy.remove_ignored_directory('vendor'))
        self.assertFalse(self.policy.remove_ignored_directory('vendor'))

        self.policy.add_extension('kt')
        self.assertIn('.kt', self.policy.extensions)
        self.assertTrue(self.policy.remove_extension('.kt'))

    def test_language_mapping(self):
        self.assertEqual(self.policy.language_for('/p/a.tsx'), 'js')
        self.assertEqual(self.policy.language_for('/p/a.py'), 'python')
        self.assertEqual(self.policy.language_for('/p/a.rs'), 'rust')
        self.assertEqual(self.policy.language_for('/p/a.json'), 'js')
        self.assertEqual(ui_language_for('/p/a.ts'), 'typescript')
        self.assertEqual(ui_language_for('/p/a.yml'), 'yaml')
        self.assertEqual(ui_language_for('/p/notes.txt'), 'plaintext')

    def test_validation(self):
        with self.assertRaises(ValueError):
            EmbeddingPolicy(max_concurrency=0)
        with self.assertRaises(ValueError):
            EmbeddingPolicy(debounce_seconds=-1)
        with self.assertRaises(ValueError):
            EmbeddingPolicy(chunk_size=100, chunk_overlap=100)

    def test_round_trip_through_dict(self):
        policy = EmbeddingPolicy(debounce_seconds=0.5, max_concurrency=3)
        restored = EmbeddingPolicy.from_dict(policy.to_dict())
        self.assertEqual(restored, policy)


class TestAppConfig(unittest.TestCase):
    """Loading the application configuration"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_from_json_file(self):
        path = os.path.join(self.temp_dir, 'config.json')
        with open(path, 'w') as f:
            json.dump({
                'shadow_root': os.path.join(self.temp_dir, 'shadow'),
                'copy_files_on_open': True,
                'policy': {'debounce_seconds': 1.5, 'max_concurrency': 2},
                'llm': {'model': 'llama3', 'chunk_limit': 3},
                'vector_db': {'chroma_collection_name': 'test-store'},
            }, f)

        config = AppConfig.from_file(path)

        self.assertEqual(config.shadow_root, os.path.join(self.temp_dir, 'shadow'))
        self.assertTrue(config.copy_files_on_open)
        self.assertEqual(config.policy.debounce_seconds, 1.5)
        self.assertEqual(config.policy.max_concurrency, 2)
        self.assertEqual(config.llm.model, 'llama3')
        self.assertEqual(config.llm.chunk_limit, 3)
        self.assertEqual(config.vector_db.chroma_collection_name, 'test-store')

    def test_from_yaml_file(self):
        path = os.path.join(self.temp_dir, 'config.yaml')
        with open(path, 'w') as f:
            f.write(
                "user_id: alice\n"
                "policy:\n"
                "  extensions: ['.py']\n"
                "  ignored_directories: ['venv']\n"
            )

        config = AppConfig.from_file(path)

        self.assertEqual(config.user_id, 'alice')
        self.assertEqual(config.policy.extensions, ['.py'])
        self.assertEqual(config.policy.ignored_directories, ['venv'])

    def test_save_and_reload(self):
        path = os.path.join(self.temp_dir, 'saved.yaml')
        config = AppConfig(shadow_root=os.path.join(self.temp_dir, 's'),
                           state_file=os.path.join(self.temp_dir, 'state.json'))
        config.save_to_file(path)

        reloaded = AppConfig.from_file(path)
        self.assertEqual(reloaded.to_dict(), config.to_dict())

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            AppConfig.from_file(os.path.join(self.temp_dir, 'nope.json'))

    def test_paths_are_expanded(self):
        config = AppConfig(shadow_root='~/shadow-test')
        self.assertTrue(os.path.isabs(config.shadow_root))
        self.assertNotIn('~', config.shadow_root)


if __name__ == '__main__':
    unittest.main()
