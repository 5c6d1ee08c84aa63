"""
Unit tests for CLI module.
"""

import unittest
from unittest.mock import MagicMock, patch
from cli import build_parser, main

REQUIRED = [
    "--subscription",
    "sub-1",
    "--resource-group",
    "arc-rg",
    "--location",
    "westeurope",
]


class TestCLI(unittest.TestCase):
    """Test CLI argument parsing and entry point."""

    def test_build_parser_defaults_to_check_mode(self):
        """Test parser defaults."""
        args = build_parser().parse_args(REQUIRED)

        self.assertEqual(args.subscription, "sub-1")
        self.assertEqual(args.resource_group, "arc-rg")
        self.assertEqual(args.location, "westeurope")
        self.assertFalse(args.update)
        self.assertIsNone(args.catalog_file)
        self.assertEqual(args.poll_interval, 30)
        self.assertEqual(args.dispatch_delay, 2.0)
        self.assertFalse(args.verbose)

    def test_parser_with_all_options(self):
        """Test parser handles all command-line options."""
        args = build_parser().parse_args(
            REQUIRED
            + [
                "--update",
                "--catalog-file",
                "catalog.json",
                "--poll-interval",
                "10",
                "--dispatch-delay",
                "0.5",
                "--verbose",
            ]
        )

        self.assertTrue(args.update)
        self.assertEqual(args.catalog_file, "catalog.json")
        self.assertEqual(args.poll_interval, 10.0)
        self.assertEqual(args.dispatch_delay, 0.5)
        self.assertTrue(args.verbose)

    def test_explicit_check_flag(self):
        args = build_parser().parse_args(REQUIRED + ["--check"])
        self.assertFalse(args.update)

    def test_check_and_update_are_mutually_exclusive(self):
        with self.assertRaises(SystemExit):
            build_parser().parse_args(REQUIRED + ["--check", "--update"])

    def test_parser_requires_resource_group(self):
        with self.assertRaises(SystemExit):
            build_parser().parse_args(
                ["--subscription", "sub-1", "--location", "westeurope"]
            )

    @patch("cli.ExtensionReconciler")
    @patch("cli.AzCliCatalogSource")
    @patch("cli.setup_logging")
    def test_main_check_mode(self, mock_setup_logging, mock_source_class, mock_reconciler_class):
        """Test main in check mode uses the Azure CLI catalog."""
        mock_reconciler = MagicMock()
        mock_reconciler_class.return_value = mock_reconciler

        result = main(REQUIRED)

        self.assertEqual(result, 0)
        mock_source_class.assert_called_once_with("westeurope")
        kwargs = mock_reconciler_class.call_args[1]
        self.assertEqual(kwargs["subscription_id"], "sub-1")
        self.assertEqual(kwargs["resource_group"], "arc-rg")
        self.assertIs(kwargs["catalog_source"], mock_source_class.return_value)
        self.assertFalse(kwargs["update"])
        mock_reconciler.run.assert_called_once_with()
        self.assertEqual(
            mock_setup_logging.call_args[1]["log_file"], "arc-extension-check.log"
        )

    @patch("cli.ExtensionReconciler")
    @patch("cli.FileCatalogSource")
    @patch("cli.setup_logging")
    def test_main_update_mode_with_catalog_file(
        self, mock_setup_logging, mock_source_class, mock_reconciler_class
    ):
        """Test main in update mode with a catalog file."""
        result = main(REQUIRED + ["--update", "--catalog-file", "catalog.json"])

        self.assertEqual(result, 0)
        mock_source_class.assert_called_once_with("catalog.json")
        self.assertTrue(mock_reconciler_class.call_args[1]["update"])
        self.assertEqual(
            mock_setup_logging.call_args[1]["log_file"], "arc-extension-update.log"
        )

    @patch("cli.ExtensionReconciler")
    @patch("cli.AzCliCatalogSource")
    @patch("cli.setup_logging")
    def test_main_propagates_failures(
        self, mock_setup_logging, mock_source_class, mock_reconciler_class
    ):
        """Test run failures are not turned into a success exit code."""
        mock_reconciler_class.return_value.run.side_effect = RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            main(REQUIRED)


if __name__ == "__main__":
    unittest.main()
