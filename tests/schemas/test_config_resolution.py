import pytest
from pydantic import ValidationError

from lfbatch.lightfield.stages import Stage
from lfbatch.schemas.param import ParamConfig
from lfbatch.schemas.user import UserConfig
from lfbatch.schemas.cli import CLIConfig
from lfbatch.schemas.resolve import resolve_config, deep_merge

pytestmark = pytest.mark.unit


def test_defaults_resolve_to_internal(internal_config):
    """ParamConfig alone resolves to a complete runtime config."""
    assert internal_config.input_path == "Images"
    assert internal_config.file.output_format == "nc"
    assert internal_config.file.output_precision == "uint16"
    assert internal_config.file.output_path is None
    assert internal_config.decode.optional_tasks == []
    assert internal_config.decode.precision == "single"
    assert internal_config.rect.max_grid_model_diff == pytest.approx(1e-5)


def test_internal_config_is_frozen(internal_config):
    with pytest.raises(ValidationError):
        internal_config.input_path = "Elsewhere"


def test_clip_mode_defaults_to_hard(internal_config):
    assert internal_config.decode.correct_saturated is False
    assert internal_config.decode.clip_mode == "hard"


def test_clip_mode_soft_when_correcting_saturation(make_config):
    config = make_config(DecodeOptions={"CorrectSaturated": True})
    assert config.decode.clip_mode == "soft"


def test_explicit_clip_mode_wins(make_config):
    config = make_config(DecodeOptions={"CorrectSaturated": True, "ClipMode": "None"})
    assert config.decode.clip_mode == "none"


def test_colour_compatibility_disables_white_image_normalisation(make_config):
    config = make_config(DecodeOptions={"NormaliseWIColours": True, "NormaliseWIExposure": True})
    assert config.decode.colour_compatibility is True
    assert config.decode.normalise_wi_colours is False
    assert config.decode.normalise_wi_exposure is False


def test_normalisation_kept_without_colour_compatibility(make_config):
    config = make_config(DecodeOptions={"ColourCompatibility": False})
    assert config.decode.normalise_wi_colours is True
    assert config.decode.normalise_wi_exposure is True


def test_resamp_none_forces_nc_output(make_config, caplog):
    config = make_config(OUTPUT_FORMAT="eslf.png", DecodeOptions={"ResampMethod": "none"})
    assert config.file.output_format == "nc"
    assert "Only 'nc' output" in caplog.text


def test_unclipped_output_forces_nc(make_config, caplog):
    config = make_config(OUTPUT_FORMAT="eslf.jpg", DecodeOptions={"ClipMode": "none"})
    assert config.file.output_format == "nc"
    assert "clip_mode 'none'" in caplog.text


def test_soft_clip_keeps_requested_format(make_config):
    config = make_config(OUTPUT_FORMAT="eslf.png", DecodeOptions={"CorrectSaturated": True})
    assert config.file.output_format == "eslf.png"


def test_calibration_database_defaults_to_white_image_folder(make_config):
    config = make_config(DecodeOptions={"WhiteImageDatabasePath": "/data/Cameras"})
    assert config.rect.calibration_database_path == "/data/Cameras"


def test_calibration_database_default_strips_database_file_name(make_config):
    config = make_config(
        DecodeOptions={"WhiteImageDatabasePath": "/data/Cameras/WhiteImageDatabase.json"}
    )
    assert config.rect.calibration_database_path == "/data/Cameras"


def test_explicit_calibration_database_path_kept(make_config):
    config = make_config(RectOptions={"CalibrationDatabasePath": "/cal"})
    assert config.rect.calibration_database_path == "/cal"


def test_unrecognized_output_format_rejected_up_front():
    """A bad format fails resolution, before any record is touched."""
    with pytest.raises(ValidationError):
        resolve_config(ParamConfig(), UserConfig(OUTPUT_FORMAT="tiff"))


def test_unknown_task_rejected():
    with pytest.raises(ValidationError):
        resolve_config(ParamConfig(), UserConfig(TASKS=["Refocus"]))


def test_grid_tolerance_must_be_positive():
    with pytest.raises(ValidationError):
        resolve_config(ParamConfig(), UserConfig(RectOptions={"MaxGridModelDiff": 0}))


def test_name_pattern_needs_one_placeholder():
    with pytest.raises(ValidationError):
        ParamConfig.model_validate({"file": {"save_fname_pattern": "decoded"}})


def test_tasks_are_stages(make_config):
    config = make_config(TASKS=["Rectify", "ColourCorrect", "Rectify"])
    assert config.decode.optional_tasks == [Stage.RECTIFY, Stage.COLOUR_CORRECT]
    assert all(isinstance(s, Stage) for s in config.decode.optional_tasks)


def test_input_path_accepts_a_list(make_config):
    config = make_config(INPUT_PATH=["Images/F01", "Images/F02"])
    assert config.input_path == ["Images/F01", "Images/F02"]


def test_resolve_accepts_plain_dicts():
    config = resolve_config({}, {"TASKS": "ColourCorrect"}, {"force_redo": True})
    assert config.decode.optional_tasks == [Stage.COLOUR_CORRECT]
    assert config.file.force_redo is True


def test_deep_merge_nested():
    base = {"a": 1, "b": {"c": 2, "d": 3}}
    merged = deep_merge(base, {"b": {"d": 4}}, {"e": 5})
    assert merged == {"a": 1, "b": {"c": 2, "d": 4}, "e": 5}
    # base untouched
    assert base["b"]["d"] == 3
