from __future__ import annotations

import pytest

from clickup_dashboard.config import DEFAULT_CLICKUP_URL, AppConfig


def test_load_yaml_with_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "clickup:\n"
        "  api_token: pk_1\n"
        "  team_id: 9001\n"
        "sync:\n"
        "  comment_chunk_size: 3\n"
        f"cache_db: {tmp_path / 'nested' / 'cache.sqlite'}\n",
        encoding="utf-8",
    )

    config = AppConfig.load(path)

    assert config.clickup.team_id == "9001"
    assert config.clickup.base_url == DEFAULT_CLICKUP_URL
    assert config.sync.comment_chunk_size == 3
    assert config.sync.page_size == 100
    assert config.sync.max_pages == 50
    assert config.gemini.comment_limit == 50
    assert config.visibility[0].exact_names == ["TS Sales Inc."]

    config.ensure_runtime_dirs()
    assert (tmp_path / "nested").is_dir()


def test_invalid_config_raises_value_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("clickup:\n  team_id: 1\n", encoding="utf-8")

    with pytest.raises(ValueError, match="некорректна"):
        AppConfig.load(path)
