import pytest

from lfbatch.contracts import ArtifactReadError
from lfbatch.lightfield.stages import Stage
from lfbatch.pipeline.completion import CompletionTracker
from lfbatch.pipeline.persistence import PersistenceEngine
from tests.helpers.fake_lightfield import make_record

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]

NAME = "F01/IMG_0001"


@pytest.fixture
def tracker_for(pipeline_config, pipeline_output_dirs):
    """Tracker plus persistence for a config with the given user overrides."""
    def _make(**overrides):
        config = pipeline_config(**overrides)
        persistence = PersistenceEngine(config, pipeline_output_dirs["base"])
        return CompletionTracker(config, persistence), persistence
    return _make


def test_no_artifact_needs_decode(tracker_for):
    tracker, persistence = tracker_for(TASKS=["ColourCorrect"])

    status = tracker.check(NAME)

    assert status.needs_decode
    assert not status.up_to_date
    assert status.remaining == (Stage.COLOUR_CORRECT,)
    assert status.path == persistence.artifact_path(NAME)
    assert status.record is None


def test_existing_artifact_with_everything_requested(tracker_for):
    tracker, persistence = tracker_for(TASKS=["ColourCorrect"])
    persistence.save(make_record(tracker.config, completed=[Stage.COLOUR_CORRECT]))

    status = tracker.check(NAME)

    assert status.up_to_date
    assert status.completed == (Stage.COLOUR_CORRECT,)
    # Nothing left to do, so the samples are not loaded
    assert status.record is None


def test_decode_only_request_is_satisfied_by_any_artifact(tracker_for):
    tracker, persistence = tracker_for()
    persistence.save(make_record(tracker.config, completed=[Stage.RECTIFY]))

    assert tracker.check(NAME).up_to_date


def test_remaining_stages_load_the_record(tracker_for):
    tracker, persistence = tracker_for(TASKS=["ColourCorrect", "Rectify"])
    persistence.save(make_record(tracker.config, completed=[Stage.COLOUR_CORRECT]))

    status = tracker.check(NAME)

    assert status.exists and not status.needs_decode
    assert status.remaining == (Stage.RECTIFY,)
    assert status.record is not None
    assert status.record.completed == (Stage.COLOUR_CORRECT,)
    assert status.record.name == NAME


def test_requested_override(tracker_for):
    tracker, persistence = tracker_for()
    persistence.save(make_record(tracker.config))

    status = tracker.check(NAME, requested=["Rectify"])

    assert status.remaining == (Stage.RECTIFY,)


def test_force_redo_ignores_artifact(tracker_for):
    tracker, persistence = tracker_for(FORCE_REDO=True, TASKS=["ColourCorrect"])
    persistence.save(make_record(tracker.config, completed=[Stage.COLOUR_CORRECT]))

    status = tracker.check(NAME)

    assert status.needs_decode
    assert status.remaining == (Stage.COLOUR_CORRECT,)


def test_unreadable_artifact_raises(tracker_for):
    tracker, persistence = tracker_for()
    path = persistence.artifact_path(NAME)
    path.parent.mkdir(parents=True)
    path.write_text("garbage")

    with pytest.raises(ArtifactReadError):
        tracker.check(NAME)
    # Left in place for inspection
    assert path.exists()
