import logging

import pytest

from jetpack import __version__
from jetpack.core.config import Settings
from jetpack.core.exceptions import ImageProcessingError, StorageError
from jetpack.core.logging import (
    LogContext,
    operation_id_var,
    bind_operation,
    setup_logging,
    setup_logging_from_settings,
    stage_var,
    with_logging,
)
from jetpack.core.metrics import blob_operations_total, record_blob_operation, track_stage_latency


def test_log_context_restores_previous_values():
    with LogContext(operation_id="op-1") as context:
        context.set_stage("orientation")
        context.set_stage("render")
        assert operation_id_var.get() == "op-1"
        assert stage_var.get() == "render"
    
    assert operation_id_var.get() is None
    assert stage_var.get() is None


def test_exception_picks_up_operation_id():
    with LogContext(operation_id="op-2"):
        error = ImageProcessingError("bad pixels", stage="render")
    
    assert error.to_dict() == {
        "error": "bad pixels",
        "code": 422,
        "operation_id": "op-2",
        "stage": "render",
        "details": {},
    }


def test_storage_error_details():
    error = StorageError("nope", container="images", key="a.jpg")
    assert error.code == 502
    assert error.details == {"container": "images", "key": "a.jpg"}


def test_with_logging_resets_stage_and_reraises():
    @with_logging("render")
    def explode():
        assert stage_var.get() == "render"
        raise ValueError("boom")
    
    with pytest.raises(ValueError):
        explode()
    assert stage_var.get() is None


def test_setup_logging_console_mode():
    setup_logging(log_level="debug", json_format=False)
    setup_logging(log_level="INFO", json_format=True)


def test_setup_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        setup_logging(log_level="chatty")


def test_setup_logging_from_settings_applies_level():
    root = logging.getLogger()
    previous = root.level
    try:
        setup_logging_from_settings(Settings(LOG_LEVEL="warning", LOG_FORMAT_JSON=False))
        assert root.level == logging.WARNING
        setup_logging_from_settings(Settings(LOG_LEVEL="DEBUG", LOG_FORMAT_JSON=True))
        assert root.level == logging.DEBUG
    finally:
        root.setLevel(previous)


def test_events_carry_version_and_operation():
    with LogContext(operation_id="op-3", stage="upload"):
        event = bind_operation(None, "info", {"event": "blob_uploaded"})
        explicit = bind_operation(None, "info", {"event": "blob_uploaded", "stage": "render"})
    
    assert event == {"event": "blob_uploaded", "version": __version__, "operation_id": "op-3", "stage": "upload"}
    assert explicit["stage"] == "render"
    assert bind_operation(None, "info", {"event": "idle"}) == {"event": "idle", "version": __version__}


def test_track_stage_latency_reraises():
    with pytest.raises(RuntimeError):
        with track_stage_latency("delete"):
            raise RuntimeError("backend down")


def test_record_blob_operation_increments_counter():
    counter = blob_operations_total.labels(operation="upload", status="success")
    before = counter._value.get()
    record_blob_operation("upload", "success")
    assert counter._value.get() == before + 1
