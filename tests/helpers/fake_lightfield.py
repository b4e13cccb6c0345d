import json
from pathlib import Path

import numpy as np

from lfbatch.lightfield.collaborators import RectificationResult
from lfbatch.lightfield.grid_model import LensletGridModel
from lfbatch.lightfield.records import (
    DecodeConfiguration,
    LightFieldRecord,
    RectConfiguration,
)


CAM_SERIAL = "B5143300780"

GRID_MODEL = {
    "HSpacing": 14.0,
    "VSpacing": 12.124,
    "HOffset": 7.3,
    "VOffset": 5.1,
    "Rot": 0.0012,
    "Orientation": "horz",
    "FirstPosShiftRow": 2,
}


def make_lf_metadata(serial=CAM_SERIAL, zoom_step=1200, focus_step=870):
    """Camera metadata as found in a raw lenslet file."""
    return {
        "SerialData": {"camera": {"serialNumber": serial}},
        "devices": {"lens": {"zoomStep": zoom_step, "focusStep": focus_step}},
    }


def make_fake_lf(shape=(3, 3, 4, 5), n_col=3, n_weight=1, seed=0, dtype=np.float32,
                 high=0.95):
    """
    Create a (T, S, V, U, C) light field with random colour in [0.05, high]
    and a constant weight channel.
    """
    rng = np.random.default_rng(seed)
    colour = rng.uniform(0.05, high, size=tuple(shape) + (n_col,))
    weight = np.ones(tuple(shape) + (n_weight,))
    return np.concatenate([colour, weight], axis=-1).astype(dtype)


def make_record(config, name="F01/IMG_0001", lf=None, grid_model=GRID_MODEL,
                lf_metadata=None, completed=(), **decode_updates):
    """
    Build a decoded record as the executor would after decoding.
    """
    if lf is None:
        lf = make_fake_lf()
    decode = DecodeConfiguration.from_internal(config.decode)
    updates = {
        "n_col_chans": 3,
        "n_weight_chans": lf.shape[-1] - 3,
        "lf_size": list(lf.shape),
        "colour_matrix": np.eye(3).tolist(),
        "colour_balance": [1.0, 1.0, 1.0],
        "optional_tasks": list(completed),
    }
    updates.update(decode_updates)
    decode = decode.model_copy(update=updates)

    return LightFieldRecord(
        name=name,
        lf=LightFieldRecord.wrap(lf),
        decode=decode,
        rect=RectConfiguration.from_internal(config.rect),
        lf_metadata=lf_metadata if lf_metadata is not None else make_lf_metadata(),
        white_image_metadata={"WhiteImageFname": "Cameras/MOD_0015.RAW"},
        grid_model=LensletGridModel.model_validate(grid_model) if grid_model else None,
    )


class FakeDecoder:
    """
    Stand-in for a lenslet decoder.

    Returns a random light field for every file, or None for files whose
    name contains one of ``fail_on``. Records every call.
    """

    def __init__(self, shape=(3, 3, 4, 5), fail_on=(), raise_on=(), grid_model=GRID_MODEL,
                 lf_metadata=None, colour_matrix=None, colour_balance=(1.0, 1.0, 1.0),
                 gamma=1.0, n_weight=1):
        self.shape = shape
        self.fail_on = tuple(fail_on)
        self.raise_on = tuple(raise_on)
        self.grid_model = grid_model
        self.lf_metadata = lf_metadata if lf_metadata is not None else make_lf_metadata()
        self.colour_matrix = colour_matrix if colour_matrix is not None else np.eye(3).tolist()
        self.colour_balance = list(colour_balance)
        self.gamma = gamma
        self.n_weight = n_weight
        self.calls = []

    def __call__(self, path, name, decode, rect):
        self.calls.append(name)
        if any(token in name for token in self.raise_on):
            raise RuntimeError(f"corrupt raw file {path}")
        if any(token in name for token in self.fail_on):
            return None

        lf = make_fake_lf(self.shape, n_weight=self.n_weight, seed=len(self.calls))
        decode = decode.model_copy(update={
            "n_col_chans": 3,
            "n_weight_chans": self.n_weight,
            "colour_matrix": self.colour_matrix,
            "colour_balance": self.colour_balance,
            "gamma": self.gamma,
        })
        return LightFieldRecord(
            name=name,
            lf=LightFieldRecord.wrap(lf),
            decode=decode,
            rect=rect,
            lf_metadata=self.lf_metadata,
            white_image_metadata={"WhiteImageFname": "Cameras/MOD_0015.RAW"},
            grid_model=LensletGridModel.model_validate(self.grid_model) if self.grid_model else None,
        )


class FakeRectifier:
    """
    Stand-in for a rectifier: halves the samples and reports fixed intrinsics.
    """

    def __init__(self, success=True, requires_weight=False):
        self.success = success
        self.requires_weight = requires_weight
        self.calls = []

    def __call__(self, lf, calibration, rect):
        self.calls.append(calibration.source)
        return RectificationResult(
            lf=lf * 0.5,
            success=self.success,
            rect_cam_intrinsics_h=[[400.0, 0.0, 1.5], [0.0, 400.0, 1.5], [0.0, 0.0, 1.0]],
        )


def write_calibration_db(folder, entries=None, grid_model=GRID_MODEL,
                         db_fname="CalibrationDatabase.json"):
    """
    Write a calibration database plus one CalInfo file per entry.

    ``entries`` is a list of (serial, zoom_step, focus_step, relative fname);
    defaults to one calibration for the fake camera.

    Returns the database file path.
    """
    folder = Path(folder)
    if entries is None:
        entries = [(CAM_SERIAL, 1200, 870, "Cal01/CalInfo.json")]

    db = {"CalibrationDatabase": []}
    for serial, zoom, focus, fname in entries:
        cal_info = {
            "LensletGridModel": grid_model,
            "EstCamIntrinsicsH": [[400.0, 0.0, 1.5], [0.0, 400.0, 1.5], [0.0, 0.0, 1.0]],
            "Distortion": [0.0, 0.0, 0.0, 0.0, 0.0],
        }
        cal_path = folder / fname
        cal_path.parent.mkdir(parents=True, exist_ok=True)
        cal_path.write_text(json.dumps(cal_info))
        db["CalibrationDatabase"].append(
            {"CamSerial": serial, "ZoomStep": zoom, "FocusStep": focus, "Fname": fname}
        )

    folder.mkdir(parents=True, exist_ok=True)
    db_path = folder / db_fname
    db_path.write_text(json.dumps(db))
    return db_path


def make_raw_tree(root, names=("F01/IMG_0001.LFR", "F01/IMG_0002.LFR", "F02/IMG_0003.lfr")):
    """
    Create placeholder raw files under root; the fake decoder never reads them.
    """
    root = Path(root)
    for name in names:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\x89LFP\x00fake")
    return root
