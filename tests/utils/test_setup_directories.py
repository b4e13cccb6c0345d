from pathlib import Path

from lfbatch.setup_directories import (
    get_artifact_path,
    get_log_path,
    get_sidecar_path,
    get_thumbnail_path,
    setup_output_directories,
)


def test_output_root_created_log_folder_deferred(tmp_path):
    dirs = setup_output_directories(tmp_path / "out" / "nested")

    assert sorted(dirs) == ["base", "logs"]
    assert dirs["base"].is_dir()
    assert dirs["logs"].parent == dirs["base"]
    assert not dirs["logs"].exists()


def test_existing_output_root_reused(tmp_path):
    assert setup_output_directories(tmp_path) == setup_output_directories(tmp_path)


def test_setup_output_directories_returns_absolute(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    dirs = setup_output_directories("relative_out")
    assert dirs["base"].is_absolute()
    assert dirs["base"] == (tmp_path / "relative_out").resolve()


def test_artifact_path_mirrors_input_tree():
    path = get_artifact_path("out", "F01/IMG_0001", "%s__Decoded", "nc")
    assert path == Path("out/F01/IMG_0001__Decoded.nc")


def test_artifact_path_carries_format_extension():
    path = get_artifact_path("out", "IMG_0001", "%s__Decoded", "eslf.jpg")
    assert path.name == "IMG_0001__Decoded.eslf.jpg"


def test_sidecar_path():
    sidecar = get_sidecar_path(Path("out/F01/IMG_0001__Decoded.eslf.png"))
    assert sidecar == Path("out/F01/IMG_0001__Decoded.eslf.png.json")


def test_thumbnail_path():
    thumb = get_thumbnail_path("out", "F01/IMG_0001", "%s__Decoded_Thumb.png")
    assert thumb == Path("out/F01/IMG_0001__Decoded_Thumb.png")


def test_log_path(tmp_path):
    dirs = setup_output_directories(tmp_path)
    log_path = get_log_path(dirs)

    assert log_path.parent == dirs["logs"]
    assert dirs["logs"].is_dir()
    assert log_path.name.startswith("decode_")
    assert log_path.suffix == ".log"
