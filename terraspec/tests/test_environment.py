import pytest

from terraspec.core import environment


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "TERRASPEC_TERRAFORM_BIN",
        "TERRASPEC_INIT_TIMEOUT",
        "TERRASPEC_PLAN_TIMEOUT",
        "TERRASPEC_SHOW_TIMEOUT",
        "TERRASPEC_MAX_PARALLEL",
        "TERRASPEC_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    assert environment.get_terraform_bin() == "terraform"
    assert environment.get_init_timeout() == 120.0
    assert environment.get_plan_timeout() == 120.0
    assert environment.get_show_timeout() == 60.0
    assert environment.get_max_parallel() == 0
    assert environment.get_log_level() == "INFO"


def test_overrides(monkeypatch):
    monkeypatch.setenv("TERRASPEC_TERRAFORM_BIN", "/opt/tofu")
    monkeypatch.setenv("TERRASPEC_PLAN_TIMEOUT", "300")
    monkeypatch.setenv("TERRASPEC_MAX_PARALLEL", "8")
    monkeypatch.setenv("TERRASPEC_LOG_LEVEL", "debug")

    assert environment.get_terraform_bin() == "/opt/tofu"
    assert environment.get_plan_timeout() == 300.0
    assert environment.get_max_parallel() == 8
    assert environment.get_log_level() == "DEBUG"


@pytest.mark.parametrize("raw", ["soon", "-5", "0"])
def test_invalid_timeout_falls_back(monkeypatch, raw):
    monkeypatch.setenv("TERRASPEC_SHOW_TIMEOUT", raw)

    assert environment.get_show_timeout() == 60.0


def test_invalid_parallelism_falls_back(monkeypatch):
    monkeypatch.setenv("TERRASPEC_MAX_PARALLEL", "many")

    assert environment.get_max_parallel() == 0
