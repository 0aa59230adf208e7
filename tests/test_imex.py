import pytest

from gpufeatures.config import Config, ImexConfig
from gpufeatures.imex import Channel, ImexChannelError, get_channels


def test_missing_channel_is_ignored(tmp_path):
    config = Config(imex=ImexConfig(channel_ids=[9999]))
    assert get_channels(config, str(tmp_path)) == []


def test_missing_required_channel_raises(tmp_path):
    config = Config(imex=ImexConfig(channel_ids=[9999], required=True))
    with pytest.raises(ImexChannelError, match="requested IMEX channel channel9999 does not exist"):
        get_channels(config, str(tmp_path))


def test_no_channels_requested(tmp_path):
    assert get_channels(Config(), str(tmp_path)) == []


def test_regular_file_is_not_a_channel(tmp_path):
    regular = tmp_path / "channel0"
    regular.write_text("")
    channel = Channel(id="0", path=str(regular), host_path=str(regular))
    assert channel.exists() is False


def test_regular_file_in_dev_root_reports_problem(tmp_path):
    node = tmp_path / "dev" / "nvidia-caps-imex-channels" / "channel9998"
    node.parent.mkdir(parents=True)
    node.write_text("")
    config = Config(imex=ImexConfig(channel_ids=[9998], required=True))
    with pytest.raises(ImexChannelError, match="is not a character device"):
        get_channels(config, str(tmp_path))


def test_missing_paths_do_not_exist(tmp_path):
    missing = str(tmp_path / "missing")
    channel = Channel(id="1", path=missing, host_path=missing)
    assert channel.exists() is False


def test_falls_back_to_container_path(tmp_path):
    host = str(tmp_path / "absent")
    channel = Channel(id="0", path="/dev/null", host_path=host)
    assert channel.exists() is True