import io

import pydantic
import pytest

from jetpack.core.exceptions import ValidationError
from jetpack.pipeline.schemas import ImageSettings, SourceAsset


def test_image_settings_defaults():
    settings = ImageSettings(widths=[100, 400])
    assert settings.widths == (100, 400)
    assert settings.force_square is False
    assert settings.background_color == (255, 255, 255, 255)


@pytest.mark.parametrize("color,expected", [
    ("#000000", (0, 0, 0, 255)),
    ("white", (255, 255, 255, 255)),
    ((10, 20, 30), (10, 20, 30, 255)),
    ((10, 20, 30, 0), (10, 20, 30, 0)),
])
def test_image_settings_background_color(color, expected):
    assert ImageSettings(widths=[1], background_color=color).background_color == expected


@pytest.mark.parametrize("kwargs", [
    {"widths": []},
    {"widths": [100, -1]},
    {"widths": [100], "background_color": (0, 0, 300, 0)},
    {"widths": [100], "background_color": "not-a-colour"},
])
def test_image_settings_rejects_invalid(kwargs):
    with pytest.raises(ValidationError) as exc_info:
        ImageSettings(**kwargs)
    assert exc_info.value.code == 400
    assert isinstance(exc_info.value.__cause__, pydantic.ValidationError)


def test_image_settings_is_immutable():
    settings = ImageSettings(widths=[100])
    with pytest.raises(pydantic.ValidationError):
        settings.force_square = True


def test_source_asset_from_stream_reads_once():
    stream = io.BytesIO(b"payload")
    asset = SourceAsset.from_stream("a.bin", "application/octet-stream", stream)
    assert asset.data == b"payload"
    assert stream.read() == b""


def test_invalid_width_reports_field():
    with pytest.raises(ValidationError) as exc_info:
        ImageSettings(widths=[-1])
    assert exc_info.value.to_dict()["details"]["errors"][0]["field"] == "widths"


@pytest.mark.parametrize("kwargs", [
    {"file_name": "", "data": b"x"},
    {"file_name": "a.jpg"},
])
def test_source_asset_rejects_invalid(kwargs):
    with pytest.raises(ValidationError) as exc_info:
        SourceAsset(**kwargs)
    assert exc_info.value.code == 400
