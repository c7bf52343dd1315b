import os

from vista_guard.env_loader import ENV_FILE_VAR, load_env, resolve_env_file


def test_explicit_env_file(tmp_path, monkeypatch):
    env = tmp_path / "guard.env"
    env.write_text("GUARD_MAX_ROWS=123\n")
    monkeypatch.delenv("GUARD_MAX_ROWS", raising=False)
    assert load_env(str(env)) == str(env)
    assert os.environ["GUARD_MAX_ROWS"] == "123"
    monkeypatch.delenv("GUARD_MAX_ROWS")


def test_existing_variables_win(tmp_path, monkeypatch):
    env = tmp_path / "guard.env"
    env.write_text("GUARD_DIALECT=mysql\n")
    monkeypatch.setenv("GUARD_DIALECT", "sqlite")
    load_env(str(env))
    assert os.environ["GUARD_DIALECT"] == "sqlite"


def test_env_file_variable(tmp_path, monkeypatch):
    env = tmp_path / "other.env"
    env.write_text("X=1\n")
    monkeypatch.setenv(ENV_FILE_VAR, str(env))
    assert resolve_env_file() == env


def test_missing_file(tmp_path):
    assert load_env(str(tmp_path / "nope.env")) is None
