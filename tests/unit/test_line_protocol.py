"""Tests for the line protocol encoder."""

import pytest

from lokiflux.core.encoding.line_protocol import encode, render, render_line
from lokiflux.core.errors import EncodingError
from lokiflux.core.models import HostStats, MetricLine, MetricWindow

HOST = HostStats(cpu_percent=12.346, memory_percent=40.0)


def _rendered(window: MetricWindow, source: str = "svc") -> list[str]:
    return render(encode(window, source, HOST)).split("\n")


class TestEncode:
    """Tests for encode()."""

    @pytest.mark.core
    def test_line_order_and_names(self) -> None:
        """One line per method, then the five fixed measurements."""
        names = [line.measurement for line in encode(MetricWindow(), "svc", HOST)]
        assert names == [
            "http_requests",
            "http_requests",
            "http_requests",
            "http_requests",
            "active_users",
            "auth_attempts",
            "system_metrics",
            "pizza_metrics",
            "pizza_latency",
        ]

    @pytest.mark.core
    def test_every_line_carries_source_tag(self) -> None:
        lines = encode(MetricWindow(), "pizza-1", HOST)
        assert all(line.tags["source"] == "pizza-1" for line in lines)

    @pytest.mark.core
    def test_request_lines(self) -> None:
        window = MetricWindow(
            request_counts={"GET": 3, "POST": 2, "PUT": 0, "DELETE": 0}
        )
        lines = _rendered(window)
        assert "http_requests,source=svc,method=GET total=3" in lines
        assert "http_requests,source=svc,method=POST total=2" in lines
        assert "http_requests,source=svc,method=DELETE total=0" in lines

    @pytest.mark.core
    def test_business_lines(self) -> None:
        window = MetricWindow(
            active_users={1, 2},
            auth_success=4,
            auth_failure=1,
            pizzas_sold=2,
            revenue=0.05,
            creation_failures=1,
            latencies_ms=[40.0, 60.0],
        )
        lines = _rendered(window)
        assert "active_users,source=svc count=2" in lines
        assert "auth_attempts,source=svc success=4,failure=1" in lines
        assert "pizza_metrics,source=svc sold=2,failures=1,revenue=0.05" in lines
        assert "pizza_latency,source=svc average_ms=50" in lines

    @pytest.mark.core
    def test_system_metrics_rounded_to_two_decimals(self) -> None:
        lines = _rendered(MetricWindow())
        assert "system_metrics,source=svc cpu_usage=12.35,memory_usage=40" in lines

    @pytest.mark.core
    def test_empty_window_latency_is_zero(self) -> None:
        assert "pizza_latency,source=svc average_ms=0" in _rendered(MetricWindow())

    @pytest.mark.core
    def test_encode_is_deterministic(self) -> None:
        window = MetricWindow(auth_success=1)
        assert encode(window, "svc", HOST) == encode(window, "svc", HOST)


class TestRenderLine:
    """Tests for render_line() escaping and validation."""

    @pytest.mark.core
    def test_tag_values_are_escaped(self) -> None:
        line = MetricLine("m", {"source": "pizza svc,eu=1"}, {"v": 1})
        assert render_line(line) == r"m,source=pizza\ svc\,eu\=1 v=1"

    @pytest.mark.core
    def test_measurement_name_is_escaped(self) -> None:
        line = MetricLine("my measure,x", {}, {"v": 1})
        assert render_line(line) == r"my\ measure\,x v=1"

    @pytest.mark.core
    def test_field_keys_are_escaped(self) -> None:
        line = MetricLine("m", {}, {"a b": 1})
        assert render_line(line) == r"m a\ b=1"

    @pytest.mark.core
    def test_empty_tag_values_are_omitted(self) -> None:
        line = MetricLine("m", {"source": ""}, {"v": 1})
        assert render_line(line) == "m v=1"

    @pytest.mark.core
    def test_float_fields(self) -> None:
        line = MetricLine("m", {}, {"a": 2.0, "b": 0.0038})
        assert render_line(line) == "m a=2,b=0.0038"

    @pytest.mark.core
    def test_newline_in_tag_rejected(self) -> None:
        line = MetricLine("m", {"source": "a\nb"}, {"v": 1})
        with pytest.raises(EncodingError):
            render_line(line)

    @pytest.mark.core
    @pytest.mark.parametrize("value", ["3", float("nan"), float("inf"), True, None])
    def test_invalid_field_values_rejected(self, value: object) -> None:
        line = MetricLine("m", {}, {"v": value})  # type: ignore[dict-item]
        with pytest.raises(EncodingError):
            render_line(line)

    @pytest.mark.core
    def test_line_without_fields_rejected(self) -> None:
        with pytest.raises(EncodingError):
            render_line(MetricLine("m", {"source": "svc"}, {}))

    @pytest.mark.core
    def test_render_joins_with_newlines(self) -> None:
        lines = [MetricLine("a", {}, {"v": 1}), MetricLine("b", {}, {"v": 2})]
        assert render(lines) == "a v=1\nb v=2"
