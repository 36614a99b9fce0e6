import pytest
from unittest.mock import patch

from opentelemetry.sdk.trace import TracerProvider as SDKTracerProvider
from opentelemetry.sdk.metrics import MeterProvider as SDKMeterProvider

from case_records_service.app import observability
from case_records_service.app.config import settings


@pytest.fixture(autouse=True)
def preserve_original_settings():
    original_traces_endpoint = settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT
    original_metrics_endpoint = settings.OTEL_EXPORTER_OTLP_METRICS_ENDPOINT
    yield
    settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT = original_traces_endpoint
    settings.OTEL_EXPORTER_OTLP_METRICS_ENDPOINT = original_metrics_endpoint


@patch('case_records_service.app.observability.metrics.set_meter_provider')
@patch('case_records_service.app.observability.trace.set_tracer_provider')
def test_setup_opentelemetry_console_only(mock_set_tracer_provider, mock_set_meter_provider):
    settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT = None
    settings.OTEL_EXPORTER_OTLP_METRICS_ENDPOINT = None

    with patch('case_records_service.app.observability.OTLPSpanExporter') as mock_span_exporter:
        observability.setup_opentelemetry("case-records-test")
        mock_span_exporter.assert_not_called()

    tracer_provider = mock_set_tracer_provider.call_args[0][0]
    assert isinstance(tracer_provider, SDKTracerProvider)
    assert tracer_provider.resource.attributes["service.name"] == "case-records-test"
    assert isinstance(mock_set_meter_provider.call_args[0][0], SDKMeterProvider)


@patch('case_records_service.app.observability.metrics.set_meter_provider')
@patch('case_records_service.app.observability.trace.set_tracer_provider')
@patch('case_records_service.app.observability.OTLPSpanExporter')
def test_setup_opentelemetry_with_otlp_traces_endpoint(mock_span_exporter, mock_set_tracer_provider, mock_set_meter_provider):
    settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT = "http://collector:4317"
    settings.OTEL_EXPORTER_OTLP_METRICS_ENDPOINT = None

    observability.setup_opentelemetry("case-records-test")

    mock_span_exporter.assert_called_once_with(endpoint="http://collector:4317", insecure=True)
