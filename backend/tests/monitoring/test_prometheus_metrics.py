from timebank.middleware.prometheus_middleware import normalize_path
from timebank.monitoring.prometheus_metrics import PrometheusMetrics, prometheus_metrics


def test_credit_movements_exported():
    PrometheusMetrics._invalidate_cache()
    prometheus_metrics.record_credit_movement("transfer", 6)

    payload = prometheus_metrics.get_metrics().decode()

    assert "timebank_credit_movements_total" in payload
    assert 'kind="transfer"' in payload


def test_booking_transitions_exported():
    prometheus_metrics.record_booking_transition("completed")
    PrometheusMetrics._invalidate_cache()

    assert 'status="completed"' in prometheus_metrics.get_metrics().decode()


def test_content_type_is_prometheus_text():
    assert prometheus_metrics.get_content_type().startswith("text/plain")


def test_path_normalization_collapses_ids():
    assert normalize_path("/api/v1/bookings/01HXYZABCDEFGHJKMNPQRSTVWX/confirm") == (
        "/api/v1/bookings/:id/confirm"
    )
    assert normalize_path("/api/v1/notifications/42/read") == "/api/v1/notifications/:id/read"
    assert normalize_path("/api/v1/sessions/today") == "/api/v1/sessions/today"
