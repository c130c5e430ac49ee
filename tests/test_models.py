import pytest

from target_compressor import config
from target_compressor.errors import DecodeFailure, InvalidPreset
from target_compressor.models import BatchResult, CompressionOutcome, ItemResult, Preset


def outcome(new_size, exceeded=False, original=1000):
    return CompressionOutcome(
        output_bytes=b"\0" * new_size,
        original_size_bytes=original,
        new_size_bytes=new_size,
        original_dimensions=(10, 10),
        new_dimensions=(10, 10),
        exceeded_target=exceeded,
        already_within_budget=False,
        output_format=config.JPEG,
    )


def test_reduction():
    assert outcome(250).reduction == 0.75
    assert outcome(1500).reduction == -0.5
    assert outcome(10, original=0).reduction == 0.0


def test_batch_summaries():
    batch = BatchResult([
        ItemResult("page 1", outcome(100)),
        ItemResult("page 2", error=DecodeFailure("bad page")),
        ItemResult("page 3", outcome(300, exceeded=True)),
    ])
    assert [o.new_size_bytes for o in batch.outcomes] == [100, 300]
    assert [i.label for i in batch.failures] == ["page 2"]
    assert batch.any_exceeded
    assert batch.total_size_bytes == 400
    assert not BatchResult().any_exceeded


@pytest.mark.parametrize("target_kb", [float("inf"), float("nan"), 0, -5])
def test_for_target_rejects_non_positive_or_non_finite(target_kb):
    with pytest.raises(InvalidPreset):
        Preset.for_target(target_kb)
