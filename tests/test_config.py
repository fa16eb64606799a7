import pytest

from constants.layout import LINE_THRESHOLD
from engine.config import EngineConfig, ImageProcessorOptions, LayoutOptions, PageRange


def test_layout_defaults_match_constants():
    options = LayoutOptions()
    assert options.line_threshold == LINE_THRESHOLD
    assert options.paragraph_gap == 18.0
    assert options.validate()


def test_layout_options_from_dict_ignores_unknown_keys(caplog):
    options = LayoutOptions.from_dict({"line_threshold": 10, "bogus": 1})
    assert options.line_threshold == 10
    assert "bogus" in caplog.text


def test_invalid_layout_options():
    assert not LayoutOptions(line_threshold=0).validate()
    assert not LayoutOptions(syntax_density_threshold=2).validate()
    assert not LayoutOptions(max_list_level=-1).validate()


def test_image_options_validation():
    assert ImageProcessorOptions().validate()
    assert not ImageProcessorOptions(max_image_size_mb=0).validate()


def test_engine_config_round_trip():
    config = EngineConfig(enable_image_processor=False, layout_options={"list_indent_size": 40})
    restored = EngineConfig.from_dict({
        'enable_image_processor': False,
        'layout_options': {"list_indent_size": 40},
    })
    assert restored.get_layout_options().list_indent_size == 40
    assert config.to_dict()['layout_options']['list_indent_size'] == 40
    assert config.to_dict()['enable_image_processor'] is False


def test_engine_config_validation():
    assert EngineConfig.default().validate()
    assert not EngineConfig(timeout_seconds=5).validate()
    assert not EngineConfig(enable_text_processor=False, enable_image_processor=False).validate()
    assert not EngineConfig(layout_options={"list_indent_size": -1}).validate()


def test_page_range():
    assert PageRange(start=2, end=5).to_page_numbers(10) == [2, 3, 4, 5]
    assert PageRange(start=3).to_page_numbers(4) == [3, 4]
    assert PageRange(start=2, end=9).to_page_numbers(3) == [2, 3]
    assert PageRange(start=5).to_page_numbers(3) == []
    assert PageRange.single_page(1).to_page_numbers(0) == []
    assert PageRange.all_pages().to_page_numbers(2) == [1, 2]


def test_page_range_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        PageRange(start=5, end=2)
    with pytest.raises(ValueError):
        PageRange(start=0)
