"""
End-to-end tests for the command-line interface.

Every run works on a temporary hosts file, nginx directory and local config;
auto refresh is turned off so no process is ever queried or started.
"""

import json
import tempfile
from pathlib import Path

from local_domains.cli import create_parser, main


def init_args(tmp: Path, *extra: str) -> list[str]:
    return [
        "--config", str(tmp / "config.json"),
        "init",
        "--hosts-file", str(tmp / "hosts"),
        "--proxy-path", str(tmp / "nginx"),
        "--no-auto-refresh",
        "--no-backup",
        *extra,
    ]


def prepare(tmp: Path) -> None:
    (tmp / "hosts").write_text("127.0.0.1 localhost\n", encoding="utf-8")
    (tmp / "nginx" / "conf").mkdir(parents=True)
    (tmp / "nginx" / "conf" / "nginx.conf").write_text("http {\n}\n", encoding="utf-8")


class TestInit:
    def test_init_writes_settings(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)

            assert main(init_args(tmp, "--alias", "sites")) == 0

            data = json.loads((tmp / "config.json").read_text(encoding="utf-8"))
            assert data["domains"] == []
            assert data["settings"]["host_file"] == str(tmp / "hosts")
            assert data["settings"]["proxy_install_path"] == str(tmp / "nginx")
            assert data["settings"]["proxy_alias_dir_name"] == "sites"
            assert data["settings"]["auto_refresh"] is False
            assert data["settings"]["backup_host_file"] is None
            assert "Local config created" in capsys.readouterr().out

    def test_init_refuses_to_overwrite(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            main(init_args(tmp))

            assert main(init_args(tmp)) == 1
            assert "Already exists" in capsys.readouterr().err

            assert main(init_args(tmp, "--force")) == 0


class TestDomainCommands:
    def test_create_list_disable(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            prepare(tmp)
            config = ["--config", str(tmp / "config.json")]
            main(init_args(tmp))
            capsys.readouterr()

            assert main(config + ["create", "api.example.com", "127.0.0.1:5001"]) == 0

            hosts = (tmp / "hosts").read_text(encoding="utf-8")
            assert "127.0.0.1 api.example.com # local-domains" in hosts
            server_file = tmp / "nginx" / "conf" / "local-domains" / "api.example.com-127.0.0.1$5001.conf"
            assert server_file.exists()
            assert "Domain created: api.example.com => 127.0.0.1:5001" in capsys.readouterr().out

            assert main(config + ["disable", "api.example.com"]) == 0
            assert main(config + ["disable", "api.example.com"]) == 0
            out = capsys.readouterr().out
            assert "Domain disabled: api.example.com" in out
            assert "Domain already disabled: api.example.com" in out
            assert "api.example.com" not in (tmp / "hosts").read_text(encoding="utf-8")

            assert main(config + ["list", "--status", "inactive"]) == 0
            out = capsys.readouterr().out
            assert "Inactive" in out
            assert "api.example.com => 127.0.0.1:5001" in out
            assert "Active\n" not in out

    def test_invalid_destination(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            prepare(tmp)
            main(init_args(tmp))

            code = main(["--config", str(tmp / "config.json"), "create", "api.test", "nope"])

            assert code == 1
            assert "Invalid input" in capsys.readouterr().err

    def test_german_output(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            prepare(tmp)
            main(init_args(tmp))
            capsys.readouterr()

            main(["--config", str(tmp / "config.json"), "-l", "de", "delete", "missing.test"])

            assert "Nicht gefunden" in capsys.readouterr().err

    def test_stored_language_is_used_for_errors(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            prepare(tmp)
            config = ["--config", str(tmp / "config.json")]
            main(config + ["-l", "de"] + init_args(tmp)[2:])
            capsys.readouterr()

            assert main(config + ["delete", "missing.test"]) == 1

            assert "Nicht gefunden" in capsys.readouterr().err

    def test_commands_accept_any_case(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            prepare(tmp)
            config = ["--config", str(tmp / "config.json")]
            main(init_args(tmp))

            assert main(config + ["create", "Api.Test", "127.0.0.1:3000"]) == 0
            assert main(config + ["disable", "API.test"]) == 0
            assert "Domain disabled: api.test" in capsys.readouterr().out


class TestErrors:
    def test_missing_config(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            code = main(["--config", str(Path(tmpdir) / "config.json"), "list"])

            assert code == 1
            assert "Please run `init`" in capsys.readouterr().err

    def test_no_command_prints_help(self, capsys) -> None:
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out

    def test_parser_knows_every_command(self) -> None:
        parser = create_parser()

        for command in (
            ["create", "a.test", "127.0.0.1:1"], ["delete", "a.test"], ["enable", "a.test"],
            ["disable", "a.test"], ["refresh"], ["start"], ["stop"], ["kill"], ["link"],
            ["unlink"], ["uninstall"], ["download"], ["list"], ["init"],
        ):
            assert parser.parse_args(command).command == command[0]
