"""Saving and reloading decoded light fields.

Two artifact layouts are supported:

- ``nc``: one NetCDF4 file holding the integer samples as variable ``lf``
  (dims t, s, v, u, channel) and the provenance as global attributes. JSON
  encodes the nested provenance groups; ``max_lum`` is a plain float.
- ``eslf.png`` / ``eslf.jpg``: the samples tiled into one ESLF image, with
  the provenance in a ``<artifact>.json`` sidecar.

Either way the provenance's ``decode_options.optional_tasks`` lists exactly
the stages whose effect is in the stored samples. The completion tracker
relies on that list to decide what a later run still has to do.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING

import numpy as np
import xarray as xr

from lfbatch import __version__
from lfbatch.contracts import (
    ArtifactReadError,
    UnsupportedOutputFormat,
    assert_decoded,
    assert_quantized,
)
from lfbatch.lightfield import eslf
from lfbatch.lightfield.grid_model import LensletGridModel
from lfbatch.lightfield.quantize import from_int, normalization_divisor, to_int
from lfbatch.lightfield.records import (
    LF_DIMS,
    DecodeConfiguration,
    LightFieldRecord,
    RectConfiguration,
)
from lfbatch.lightfield.stages import Stage, ordered_stages
from lfbatch.setup_directories import get_artifact_path, get_sidecar_path, get_thumbnail_path
from lfbatch.visualization.preview import render_preview

if TYPE_CHECKING:
    from lfbatch.schemas import InternalConfig

__all__ = ['PersistenceEngine', 'OUTPUT_FORMATS', 'PROVENANCE_JSON_FIELDS']

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("nc", "eslf.png", "eslf.jpg")

# Provenance groups stored as JSON strings in NetCDF global attributes
PROVENANCE_JSON_FIELDS = (
    "generated_by",
    "decode_options",
    "rect_options",
    "lf_metadata",
    "white_image_metadata",
    "lenslet_grid_model",
)


def _stored_weight_chans(n_weight: int, output_format: str, save_weight: bool) -> int:
    """Weight channels that actually end up in the artifact."""
    if not save_weight or output_format == "eslf.jpg":
        return 0
    if output_format == "eslf.png":
        # One alpha plane
        return min(n_weight, 1)
    return n_weight


class PersistenceEngine:
    """Writes records to disk and reads them back.

    Parameters
    ----------
    config : InternalConfig
        Resolved run configuration. Only the file options and the
        rectification options are used.
    output_root : Path
        Root of the output tree; artifact names are relative to it.
    """

    def __init__(self, config: "InternalConfig", output_root):
        self.config = config
        self.file = config.file
        self.output_root = Path(output_root)
        self.output_format = config.file.output_format

    # ------------------------------------------------------------------
    # Paths

    def artifact_path(self, name: str) -> Path:
        return get_artifact_path(self.output_root, name, self.file.save_fname_pattern,
                                 self.output_format)

    def thumbnail_path(self, name: str) -> Path:
        return get_thumbnail_path(self.output_root, name, self.file.thumb_fname_pattern)

    # ------------------------------------------------------------------
    # Writing

    def build_provenance(self, record: LightFieldRecord, max_lum: float,
                         stored_weight_chans: Optional[int] = None) -> Dict[str, Any]:
        """Explicit provenance for one record, as JSON-compatible values.

        Parameters
        ----------
        record : LightFieldRecord
        max_lum : float
            Divisor applied before quantization.
        stored_weight_chans : int, optional
            Weight channels kept in the artifact, if fewer than the record has.

        Returns
        -------
        dict
            generated_by, decode_options, rect_options, lf_metadata,
            white_image_metadata, lenslet_grid_model, max_lum
        """
        decode = record.decode
        if stored_weight_chans is not None and stored_weight_chans != decode.n_weight_chans:
            decode = decode.model_copy(update={"n_weight_chans": stored_weight_chans})

        grid_model = None
        if record.grid_model is not None:
            grid_model = record.grid_model.model_dump(mode="json", by_alias=True)

        return {
            "generated_by": {
                "generator": "lfbatch",
                "version": __version__,
                "time": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            },
            "decode_options": decode.model_dump(mode="json"),
            "rect_options": record.rect.model_dump(mode="json"),
            "lf_metadata": record.lf_metadata,
            "white_image_metadata": record.white_image_metadata,
            "lenslet_grid_model": grid_model,
            "max_lum": float(max_lum),
        }

    def save(self, record: LightFieldRecord) -> Path:
        """Quantize and write one record plus its thumbnail.

        Returns
        -------
        Path
            The artifact written.

        Raises
        ------
        UnsupportedOutputFormat
            If the configured format has no writer. Checked before anything
            is written.
        """
        if self.output_format not in OUTPUT_FORMATS:
            raise UnsupportedOutputFormat(self.output_format)
        assert_decoded(record)

        decode = record.decode
        lf = np.asarray(record.lf.values)

        max_lum = normalization_divisor(lf, decode.clip_mode)
        samples = to_int(lf / max_lum, self.file.output_precision)
        assert_quantized(samples, self.file.output_precision)

        n_weight = _stored_weight_chans(decode.n_weight_chans, self.output_format,
                                        self.file.save_weight)
        samples = samples[..., :decode.n_col_chans + n_weight]

        path = self.artifact_path(record.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        thumb_path = self.thumbnail_path(record.name)
        logger.info("Saving to: %s, %s", path, thumb_path)

        render_preview(lf, decode.n_col_chans, record.name, thumb_path,
                       hist_thresh=decode.colour_hist_thresh, completed=record.completed)

        provenance = self.build_provenance(record, max_lum, stored_weight_chans=n_weight)
        if self.output_format == "nc":
            self._write_netcdf(path, samples, provenance)
        else:
            eslf.write_eslf(path, samples, decode.n_col_chans, write_alpha=n_weight > 0,
                            imwrite_options=self.file.imwrite_options)
            self._write_sidecar(get_sidecar_path(path), provenance)

        logger.info("Saved %s [%s] max_lum=%.4g", path.name,
                    ", ".join(str(s) for s in record.completed) or "decode only", max_lum)
        return path

    def _write_netcdf(self, path: Path, samples: np.ndarray, provenance: Dict[str, Any]) -> None:
        attrs = {key: json.dumps(provenance[key]) for key in PROVENANCE_JSON_FIELDS}
        attrs["max_lum"] = provenance["max_lum"]
        attrs["description"] = "Decoded light field"

        ds = xr.Dataset({"lf": (LF_DIMS, samples)}, attrs=attrs)
        encoding = {"lf": {"zlib": True, "complevel": 4}}
        ds.to_netcdf(path, mode='w', engine='netcdf4', format='NETCDF4', encoding=encoding)
        ds.close()

    def _write_sidecar(self, path: Path, provenance: Dict[str, Any]) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(provenance, f, indent=2)

    # ------------------------------------------------------------------
    # Reading

    def read_provenance(self, path) -> Dict[str, Any]:
        """Provenance of an existing artifact without loading its samples.

        Raises
        ------
        ArtifactReadError
            If the artifact or its sidecar is unreadable, or carries no
            decode options.
        """
        path = Path(path)
        try:
            if self.output_format == "nc":
                with xr.open_dataset(path, engine='netcdf4', mask_and_scale=False) as ds:
                    attrs = dict(ds.attrs)
                provenance = {key: json.loads(attrs[key]) for key in PROVENANCE_JSON_FIELDS
                              if key in attrs}
                provenance["max_lum"] = float(attrs.get("max_lum", 1.0))
            else:
                with open(get_sidecar_path(path), "r", encoding="utf-8") as f:
                    provenance = json.load(f)
        except (OSError, ValueError, KeyError, TypeError, RuntimeError) as e:
            raise ArtifactReadError(path, e) from e

        if not isinstance(provenance.get("decode_options"), dict):
            raise ArtifactReadError(path, "no decode options in provenance")
        return provenance

    def read_completed_tasks(self, path, provenance: Optional[Dict[str, Any]] = None) -> Tuple[Stage, ...]:
        """Stages already applied to the stored samples."""
        provenance = provenance or self.read_provenance(path)
        tasks = provenance["decode_options"].get("optional_tasks") or []
        if isinstance(tasks, str):
            tasks = [tasks]
        try:
            return ordered_stages(tasks)
        except ValueError as e:
            raise ArtifactReadError(path, e) from e

    def load_record(self, path, name: str,
                    provenance: Optional[Dict[str, Any]] = None) -> LightFieldRecord:
        """Reload a full record for further processing.

        Samples are converted back to the floating precision recorded at
        decode time and multiplied by the stored ``max_lum``, so a light
        field saved with clip mode "none" comes back at its original scale.
        The weight channel count is taken from what is actually stored.

        Raises
        ------
        ArtifactReadError
            If the artifact cannot be read or does not match its provenance.
        """
        path = Path(path)
        provenance = provenance or self.read_provenance(path)
        max_lum = float(provenance.get("max_lum", 1.0))

        try:
            decode = DecodeConfiguration.model_validate(provenance["decode_options"])
            grid_model = None
            if provenance.get("lenslet_grid_model"):
                grid_model = LensletGridModel.model_validate(provenance["lenslet_grid_model"])

            if self.output_format == "nc":
                with xr.open_dataset(path, engine='netcdf4', mask_and_scale=False) as ds:
                    stored = ds["lf"].values
            else:
                if not decode.lf_size or len(decode.lf_size) < 2:
                    raise ValueError("lf_size missing, cannot unpack ESLF image")
                stored = eslf.read_eslf(path, decode.lf_size[:2], decode.n_col_chans,
                                        load_alpha=self.file.save_weight)
        except ArtifactReadError:
            raise
        except (OSError, ValueError, KeyError, TypeError, RuntimeError) as e:
            raise ArtifactReadError(path, e) from e

        if stored.dtype.kind != "u":
            raise ArtifactReadError(path, f"expected unsigned integer samples, found {stored.dtype}")
        n_weight = stored.shape[-1] - decode.n_col_chans
        if n_weight < 0:
            raise ArtifactReadError(
                path, f"{stored.shape[-1]} channels stored, {decode.n_col_chans} colour channels expected"
            )

        decode = decode.model_copy(update={"n_weight_chans": n_weight})
        lf = from_int(stored, decode.working_dtype, max_lum)
        logger.debug("Reloaded %s: shape=%s dtype=%s max_lum=%.4g", path.name, lf.shape, lf.dtype, max_lum)

        return LightFieldRecord(
            name=name,
            lf=LightFieldRecord.wrap(lf),
            decode=decode,
            rect=RectConfiguration.from_internal(self.config.rect),
            lf_metadata=provenance.get("lf_metadata") or {},
            white_image_metadata=provenance.get("white_image_metadata") or {},
            grid_model=grid_model,
        )
