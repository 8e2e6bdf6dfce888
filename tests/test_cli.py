"""
Tests for the command-line interface.
"""

import json

import pytest

from photoclean.__main__ import main as package_main
from photoclean.cli import main
from photoclean.cli.arg_parser import parse_arguments
from photoclean.cli.orchestrator import EXIT_ERROR, EXIT_OK


class TestArgParser:
    """Test argument parsing."""

    def test_defaults(self):
        args = parse_arguments(['/photos'])
        assert args.threshold is None
        assert args.workers is None
        assert args.hash_mode is None
        assert args.export_format == 'txt'
        assert not args.no_recursive

    def test_options(self):
        args = parse_arguments(['/photos', '-t', '0.2', '-w', '3', '--hash-mode', 'bytes',
                                '--check-interval', '5', '--no-progress'])
        assert args.threshold == 0.2
        assert args.workers == 3
        assert args.hash_mode == 'bytes'
        assert args.check_interval == 5
        assert args.no_progress

    def test_bad_hash_mode(self):
        with pytest.raises(SystemExit):
            parse_arguments(['/photos', '--hash-mode', 'md5'])


class TestCLI:
    """End-to-end CLI runs on real image files."""

    def test_report_and_export(self, sample_images, temp_dir, isolated_user_config, capsys):
        export_path = temp_dir / "out" / "report.json"
        export_path.parent.mkdir()

        exit_code = main([str(temp_dir), '--no-progress', '--no-recursive', '-w', '2',
                          '--export', str(export_path), '--export-format', 'json'])

        assert exit_code == EXIT_OK
        output = capsys.readouterr().out
        assert "DUPLICATE IMAGE REPORT" in output
        assert "[KEEP]" in output

        groups = json.loads(export_path.read_text())['groups']
        exact = [g for g in groups if g['kind'] == 'exact']
        assert len(exact) == 1
        assert sorted(m['filename'] for m in exact[0]['members']) == ['identical1.png', 'identical2.png']

    def test_missing_directory(self, isolated_user_config):
        assert main(['/nonexistent/photos', '--no-progress']) == EXIT_ERROR

    def test_invalid_threshold(self, temp_dir, isolated_user_config):
        assert main([str(temp_dir), '--threshold', '1.5', '--no-progress']) == EXIT_ERROR

    def test_no_images(self, temp_dir, isolated_user_config):
        assert main([str(temp_dir), '--no-progress']) == EXIT_ERROR


class TestPackageEntryPoint:
    """Test python -m photoclean dispatch."""

    def test_config_show(self, isolated_user_config, capsys):
        assert package_main(['config']) == 0
        output = capsys.readouterr().out
        assert "Not found" in output
        assert "HEIF support:" in output

    def test_config_init(self, isolated_user_config):
        assert package_main(['config', '--init']) == 0
        assert isolated_user_config.config_file_path.exists()

    def test_cli_dispatch(self, temp_dir, isolated_user_config):
        assert package_main(['cli', str(temp_dir / 'missing'), '--no-progress']) == EXIT_ERROR
