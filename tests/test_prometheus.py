from geo_publish.prometheus import PublishMetrics


def test_publish_metrics_counters():
    metrics = PublishMetrics()

    metrics.inc_attempt("exactly-once")
    metrics.inc_attempt("exactly-once")
    metrics.inc_explicit_failure("exactly-once")
    metrics.inc_timeout("at-most-once")
    metrics.inc_completed("exactly-once")
    metrics.inc_exhausted("at-most-once")
    metrics.inc_release_failure()

    output = metrics.generate_latest()
    assert b'gpp_attempts_total{mode="exactly-once"} 2.0' in output
    assert b'gpp_exhausted_total{mode="at-most-once"} 1.0' in output
    assert b"gpp_release_failures_total 1.0" in output


def test_separate_registries_do_not_collide():
    first = PublishMetrics()
    second = PublishMetrics()

    first.inc_completed("at-least-once")

    assert b'gpp_completed_total{mode="at-least-once"} 1.0' in first.generate_latest()
    assert b'gpp_completed_total{mode="at-least-once"}' not in second.generate_latest()
