from __future__ import annotations

import json

from mcwire.cli import main


def test_status_json(query_server, capsys):
    srv = query_server()
    assert main(["status", f"127.0.0.1:{srv.port}", "--json", "--timeout-ms", "2000"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["hostname"] == "Box"
    assert out["player_count"] == 2


def test_exec(rcon_server, capsys):
    srv = rcon_server(replies=[b"Set the time to 1000"])
    code = main(
        ["exec", "127.0.0.1", "--port", str(srv.port), "time_set", "day", "--password", "hunter2", "--pacing-ms", "0"]
    )
    assert code == 0
    assert capsys.readouterr().out.strip() == "Set the time to 1000"
    assert srv.received[1].body == b"time set day"


def test_exec_forbidden(capsys):
    code = main(["exec", "127.0.0.1", "STOP", "--password", "x", "--role", "USER"])
    assert code == 2
    assert "role" in capsys.readouterr().err


def test_exec_needs_password(monkeypatch, capsys):
    monkeypatch.delenv("MINECRAFT_RCON_PASS", raising=False)
    assert main(["exec", "127.0.0.1", "STOP", "--role", "ADMIN"]) == 2
    assert "password" in capsys.readouterr().err


def test_exec_wire_failure(rcon_server, capsys):
    srv = rcon_server()
    code = main(["exec", f"127.0.0.1:{srv.port}", "STOP", "--password", "nope", "--role", "ADMIN"])
    assert code == 1
    err = capsys.readouterr().err
    assert "error: operation failed" in err
    assert "nope" not in err


def test_commands_listing(capsys):
    assert main(["commands", "--json"]) == 0
    rows = json.loads(capsys.readouterr().out)
    assert rows["KICK"] == {"template": "kick %s", "enabled": True, "admin_only": True}
