"""Tests for log file setup and pruning."""

import logging

from core.logger import cleanup_old_logs, setup_logging


def test_setup_logging_creates_file_and_writes(tmp_path):
    log_file = setup_logging(tmp_path / 'logs', max_log_files=3)
    logging.getLogger('chaos.test').info("hello from test")

    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_file.parent == tmp_path / 'logs'
    assert log_file.name.startswith('chaos-')
    assert "hello from test" in log_file.read_text(encoding='utf-8')


def test_repeated_setup_keeps_one_handler(tmp_path):
    setup_logging(tmp_path / 'logs')
    setup_logging(tmp_path / 'logs')
    tagged = [h for h in logging.getLogger().handlers if getattr(h, '_chaos_log', False)]
    assert len(tagged) == 1


def test_verbose_sets_debug_level(tmp_path):
    setup_logging(tmp_path / 'logs', verbose=True)
    assert logging.getLogger().level == logging.DEBUG
    setup_logging(tmp_path / 'logs')
    assert logging.getLogger().level == logging.INFO


def test_cleanup_keeps_newest(tmp_path):
    for stamp in ('20240101-000000', '20240102-000000', '20240103-000000'):
        (tmp_path / f'chaos-{stamp}.log').write_text('x')
    (tmp_path / 'other.log').write_text('x')

    cleanup_old_logs(tmp_path, 1)

    assert sorted(p.name for p in tmp_path.iterdir()) == ['chaos-20240103-000000.log', 'other.log']
