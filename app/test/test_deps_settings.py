import pytest
from pydantic import ValidationError

from app.deps import Settings, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    for name in ("LLM_API_KEY", "OPENAI_API_KEY", "LLM_MODEL", "CTGOV_PAGE_SIZE", "CTGOV_BACKEND"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _write_config(tmp_path, text):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "appsettings.toml").write_text(text.strip())


def test_defaults_without_config_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    settings = Settings()

    assert settings.llm_provider == "openai"
    assert settings.llm_api_key is None
    assert settings.ctgov_base_url == "https://clinicaltrials.gov/api/v2"
    assert settings.ctgov_backend == "httpx"
    assert settings.port == 5001


def test_environment_variable_overrides_toml(tmp_path, monkeypatch):
    _write_config(
        tmp_path,
        """
[llm]
model = "file-model"

[ctgov]
page_size = 5
        """,
    )

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LLM_MODEL", "env-model")

    settings = Settings()

    assert settings.llm_model == "env-model"
    assert settings.ctgov_page_size == 5

    # TOML still applies once the environment variable is gone.
    monkeypatch.delenv("LLM_MODEL")
    settings_from_file = Settings()
    assert settings_from_file.llm_model == "file-model"


def test_openai_api_key_is_accepted(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    assert get_settings().llm_api_key == "sk-test"


def test_server_section_is_read(tmp_path, monkeypatch):
    _write_config(
        tmp_path,
        """
[server]
client_url = "http://frontend.test"
port = 8080

[logging]
level = "DEBUG"
        """,
    )
    monkeypatch.chdir(tmp_path)

    settings = Settings()

    assert settings.client_url == "http://frontend.test"
    assert settings.port == 8080
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("backend", [" Requests ", "HTTPX"])
def test_backend_is_normalised(backend):
    assert Settings(ctgov_backend=backend).ctgov_backend == backend.strip().lower()


def test_unknown_backend_is_rejected():
    with pytest.raises(ValidationError):
        Settings(ctgov_backend="urllib")
