"""Tests for the one-shot command line entry point."""

import sys
from unittest.mock import patch

import pytest

from cli import main as cli_main
from cli.models import FetchCommand, UploadCommand


def run_main(monkeypatch, *args):
    monkeypatch.setattr(sys, 'argv', ['chunkyard', *args])
    with patch('cli.main.dispatch_command', return_value='done') as dispatch:
        cli_main.main()
    return dispatch


def test_upload_with_name_option(monkeypatch, capsys):
    dispatch = run_main(monkeypatch, 'upload', 'big.iso', '--name', 'x.iso')

    dispatch.assert_called_once_with(UploadCommand(path='big.iso', file_name='x.iso'))
    assert capsys.readouterr().out.strip() == 'done'


def test_fetch_with_output_option(monkeypatch):
    dispatch = run_main(monkeypatch, 'fetch', 'x.iso', '-o', 'copy.iso')

    dispatch.assert_called_once_with(FetchCommand(file_name='x.iso', output_path='copy.iso'))


def test_debug_flag_is_not_part_of_the_command(monkeypatch):
    with patch('cli.main.setup_logging') as setup_logging:
        dispatch = run_main(monkeypatch, '--debug', 'upload', 'big.iso')

    setup_logging.assert_called_once_with('cli', log_level='DEBUG')
    dispatch.assert_called_once_with(UploadCommand(path='big.iso'))


def test_parse_error_exits_with_usage_status(monkeypatch, capsys):
    with pytest.raises(SystemExit) as exc_info:
        run_main(monkeypatch, 'upload', 'big.iso', '--bogus')

    assert exc_info.value.code == 2
    assert 'Unknown option for upload: --bogus' in capsys.readouterr().err


def test_no_arguments_starts_repl(monkeypatch):
    monkeypatch.setattr(sys, 'argv', ['chunkyard'])
    with patch('cli.repl.repl_loop') as repl_loop:
        cli_main.main()

    repl_loop.assert_called_once_with()
