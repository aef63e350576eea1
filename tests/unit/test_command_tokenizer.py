from dcb.UTILS.command_tokenizer import command_to_string, tokenize_command


def test_json_array():
    assert tokenize_command('["npm", "start"]') == ["npm", "start"]


def test_shell_like_split():
    assert tokenize_command('sh -c "echo hi"') == ["sh", "-c", "echo hi"]
    assert tokenize_command("python 'my app.py'") == ["python", "my app.py"]


def test_empty():
    assert tokenize_command("") == []
    assert tokenize_command("   ") == []


def test_invalid_json_falls_back_to_split():
    assert tokenize_command("[unclosed") == ["[unclosed"]


def test_list_round_trip():
    command = ["sh", "-c", "echo hello world"]
    assert tokenize_command(command_to_string(command)) == command


def test_string_kept_verbatim():
    assert command_to_string("npm start") == "npm start"
    assert command_to_string(None) == ""
