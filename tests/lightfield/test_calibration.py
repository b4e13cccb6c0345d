import json

import pytest

from lfbatch.lightfield.calibration import (
    CalibrationDatabase,
    CalibrationEntry,
    camera_key,
    locate_database_file,
)
from lfbatch.lightfield.grid_model import LensletGridModel
from tests.helpers.fake_lightfield import (
    CAM_SERIAL,
    GRID_MODEL,
    make_lf_metadata,
    write_calibration_db,
)

pytestmark = pytest.mark.unit


ENTRIES = [
    (CAM_SERIAL, 1000, 800, "CalA/CalInfo.json"),
    (CAM_SERIAL, 1300, 900, "CalB/CalInfo.json"),
    ("A999", 1200, 870, "CalC/CalInfo.json"),
]


class TestLocateDatabase:

    def test_file_path_used_directly(self, tmp_path):
        db = write_calibration_db(tmp_path)
        assert locate_database_file(db, "ignored.json") == db

    def test_single_match_in_folder(self, tmp_path):
        db = write_calibration_db(tmp_path / "Cameras" / "B5143300780")
        assert locate_database_file(tmp_path, "CalibrationDatabase.json") == db

    def test_missing_folder(self, tmp_path):
        assert locate_database_file(tmp_path / "nope", "CalibrationDatabase.json") is None

    def test_no_match(self, tmp_path):
        assert locate_database_file(tmp_path, "CalibrationDatabase.json") is None

    def test_ambiguous_matches(self, tmp_path, caplog):
        write_calibration_db(tmp_path / "cam1")
        write_calibration_db(tmp_path / "cam2")
        assert locate_database_file(tmp_path, "CalibrationDatabase.json") is None
        assert "2 candidates" in caplog.text


class TestCameraKey:

    def test_key_from_metadata(self):
        key = camera_key(make_lf_metadata(zoom_step=10, focus_step=20))
        assert key == {"cam_serial": CAM_SERIAL, "zoom_step": 10.0, "focus_step": 20.0}

    def test_missing_metadata(self):
        assert camera_key({}) is None
        assert camera_key({"SerialData": {"camera": {}}}) is None


class TestCalibrationDatabase:

    def test_load_entries(self, tmp_path):
        db = CalibrationDatabase.load(write_calibration_db(tmp_path, entries=ENTRIES))
        assert len(db.entries) == 3
        assert db.entries[0].cam_serial == CAM_SERIAL

    def test_numeric_serial_coerced(self):
        entry = CalibrationEntry.model_validate({"CamSerial": 12345, "Fname": "x.json"})
        assert entry.cam_serial == "12345"

    def test_malformed_database(self, tmp_path):
        path = tmp_path / "CalibrationDatabase.json"
        path.write_text(json.dumps({"CalibrationDatabase": [{"ZoomStep": 1}]}))
        with pytest.raises(ValueError, match="Malformed"):
            CalibrationDatabase.load(path)

    def test_select_nearest_zoom_and_focus(self, tmp_path):
        db = CalibrationDatabase.load(write_calibration_db(tmp_path, entries=ENTRIES))
        entry = db.select(make_lf_metadata(zoom_step=1250, focus_step=880))
        assert entry.fname == "CalB/CalInfo.json"

    def test_select_requires_same_camera(self, tmp_path):
        db = CalibrationDatabase.load(write_calibration_db(tmp_path, entries=ENTRIES))
        assert db.select(make_lf_metadata(serial="UNKNOWN")) is None

    def test_find_loads_calibration(self, tmp_path):
        db_path = write_calibration_db(tmp_path)
        calibration = CalibrationDatabase.load(db_path).find(make_lf_metadata())

        assert calibration.grid_model == LensletGridModel.model_validate(GRID_MODEL)
        assert "EstCamIntrinsicsH" in calibration.rectification
        assert "LensletGridModel" not in calibration.rectification
        assert calibration.source == str(tmp_path / "Cal01" / "CalInfo.json")

    def test_find_without_match(self, tmp_path):
        db = CalibrationDatabase.load(write_calibration_db(tmp_path))
        assert db.find(make_lf_metadata(serial="UNKNOWN")) is None

    def test_find_without_grid_model(self, tmp_path):
        db = CalibrationDatabase.load(write_calibration_db(tmp_path, grid_model=None))
        calibration = db.find(make_lf_metadata())
        assert calibration.grid_model is None
        assert "EstCamIntrinsicsH" in calibration.rectification

    def test_find_with_missing_calibration_info(self, tmp_path):
        db = CalibrationDatabase.load(write_calibration_db(tmp_path))
        (tmp_path / "Cal01" / "CalInfo.json").unlink()
        with pytest.raises(OSError):
            db.find(make_lf_metadata())

    def test_database_that_is_not_a_list(self, tmp_path):
        path = tmp_path / "CalibrationDatabase.json"
        path.write_text(json.dumps({"CalibrationDatabase": 3}))
        with pytest.raises(ValueError, match="Malformed"):
            CalibrationDatabase.load(path)
