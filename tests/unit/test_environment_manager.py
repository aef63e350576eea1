from dcb.MANAGERS.environment_manager import fill_env_template, load_env_values


def test_load_env_values(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("DB_PASS=hunter2\n# comment\nexport DB_USER=app\nQUOTED=\"a b\"\n")
    assert load_env_values(str(env_file)) == {"DB_PASS": "hunter2", "DB_USER": "app", "QUOTED": "a b"}


def test_missing_values_file(tmp_path):
    assert load_env_values(str(tmp_path / "missing.env")) == {}


def test_fill_env_template(tmp_path):
    env_file = tmp_path / "values.env"
    env_file.write_text("DB_PASS=hunter2\nUNUSED=1\n")
    filled = fill_env_template("DB_PASS=\nDB_USER=", str(env_file))
    assert filled == "DB_PASS=hunter2\nDB_USER="


def test_fill_without_values():
    assert fill_env_template("A=\nB=") == "A=\nB="
