from pathlib import Path

import pytest

from conftest import touch
from servevideos.__main__ import configure, main
from servevideos.config import (
	EXT,
	HOST,
	PORT,
	ConfigurationError,
	ServerConfig,
	parseAddress,
)


def test_parse_address():
	assert parseAddress(":8010", "0.0.0.0") == ("0.0.0.0", 8010)
	assert parseAddress("localhost:9000") == ("localhost", 9000)
	assert parseAddress("127.0.0.1:0") == ("127.0.0.1", 0)
	assert parseAddress("[::1]:8010") == ("::1", 8010)


def test_parse_invalid_address():
	for address in ("8010", "localhost", "localhost:", ":http", ":70000", ":-1"):
		with pytest.raises(ConfigurationError):
			parseAddress(address)


def test_make(tmp_path: Path):
	config = ServerConfig.Make(tmp_path, address="127.0.0.1:8123", extensions=["mp4"])
	assert config.root == tmp_path.resolve()
	assert config.root.is_absolute()
	assert (config.host, config.port) == ("127.0.0.1", 8123)
	assert config.extensions == ("mp4",)
	assert config.address == "127.0.0.1:8123"


def test_make_defaults(tmp_path: Path):
	config = ServerConfig.Make(tmp_path)
	assert config.extensions == EXT
	assert (config.host, config.port) == (HOST, PORT)
	assert config.coalesce == 0.0
	assert config.grace == 5.0


def test_make_invalid_root(tmp_path: Path):
	(file,) = touch(tmp_path, "a.mp4")
	with pytest.raises(ConfigurationError):
		ServerConfig.Make(tmp_path / "missing")
	with pytest.raises(ConfigurationError):
		ServerConfig.Make(file)


def test_make_invalid_values(tmp_path: Path):
	with pytest.raises(ConfigurationError):
		ServerConfig.Make(tmp_path, extensions=[])
	with pytest.raises(ConfigurationError):
		ServerConfig.Make(tmp_path, coalesce=-1)
	with pytest.raises(ConfigurationError):
		ServerConfig.Make(tmp_path, grace=-1)


def test_command_line(tmp_path: Path):
	config = configure(
		["-a", ":9001", "-r", str(tmp_path), "-e", "mp4", "--ext", "webm"]
		+ ["--coalesce", "0.5"]
	)
	assert config.root == tmp_path.resolve()
	assert config.port == 9001
	assert config.extensions == ("mp4", "webm")
	assert config.coalesce == 0.5


def test_command_line_errors(tmp_path: Path, capsys):
	assert main(["-r", str(tmp_path / "missing")]) == 1
	assert capsys.readouterr().err.startswith("serve-videos: Root does not exist")
	assert main(["-r", str(tmp_path), "unexpected"]) == 1
	assert "serve-videos: Unexpected arguments: unexpected" in capsys.readouterr().err
	assert main(["-r", str(tmp_path), "-a", "nowhere"]) == 1
	assert capsys.readouterr().err.startswith("serve-videos: ")


# EOF
