import logging

from blog_status import RunTally, StatusReporter, emit


def test_emit_logs_and_forwards_to_callback(caplog):
    received = []
    log = logging.getLogger('blog_converter')

    with caplog.at_level(logging.DEBUG):
        emit(log, lambda level, message: received.append((level, message)), 'success', 'Saved: a.md')

    assert received == [('success', 'Saved: a.md')]
    assert [(r.name, r.levelno, r.getMessage()) for r in caplog.records] == [
        ('blog_converter', logging.INFO, 'Saved: a.md'),
    ]


def test_summary_is_logged_under_the_status_module(caplog):
    tally = RunTally()
    tally.record_success()
    tally.record_failure()

    with caplog.at_level(logging.INFO):
        StatusReporter().summary(tally, 'output')

    assert [(r.name, r.levelno, r.getMessage()) for r in caplog.records] == [
        ('blog_status', logging.INFO, 'Completed! 1 posts saved to output'),
        ('blog_status', logging.WARNING, '1 posts failed to process'),
    ]
    assert tally.total == 2
