import pytest

from target_compressor import config
from target_compressor.document import PagedDocumentCompressor, page_render_scale, resolve_pages
from target_compressor.errors import DecodeFailure, InvalidPreset
from target_compressor.models import Preset

from conftest import FakeDocument, FakeEncoder


@pytest.fixture
def paged(encoder, factory):
    return PagedDocumentCompressor(encoder, factory)


def test_resolve_pages():
    assert resolve_pages("all", 3) == [1, 2, 3]
    assert resolve_pages(" ALL ", 2) == [1, 2]
    assert resolve_pages(2, 3) == [2]
    assert resolve_pages("3", 3) == [3]
    assert resolve_pages([3, 1], 3) == [3, 1]


def test_resolve_pages_drops_repeats_in_order():
    assert resolve_pages([1, 1, 2], 3) == [1, 2]
    assert resolve_pages([3, 1, 3, 1], 3) == [3, 1]


def test_repeated_page_is_compressed_once(paged):
    document = FakeDocument(page_count=3)
    batch = paged.compress_pages(document, [2, 2], Preset.for_target(150))
    assert [o.page_number for o in batch.outcomes] == [2]
    assert [r[0] for r in document.renders] == [2]


@pytest.mark.parametrize("pages", [0, 4, [1, 5], [], "first"])
def test_resolve_pages_rejects_bad_selection(pages):
    with pytest.raises(InvalidPreset):
        resolve_pages(pages, 3)


def test_render_scale_follows_box_width():
    assert page_render_scale(Preset.for_target(150)) == 2.0
    assert page_render_scale(Preset.for_target(1000)) == 3.0


def test_every_page_in_order_under_budget(paged):
    document = FakeDocument(page_count=5)
    batch = paged.compress_pages(document, "all", Preset.for_target(150))

    outcomes = batch.outcomes
    assert [o.page_number for o in outcomes] == [1, 2, 3, 4, 5]
    assert all(o.page_count == 5 for o in outcomes)
    assert all(o.new_size_bytes <= 150 * 1024 for o in outcomes)
    assert all(o.original_size_bytes == document.size_bytes for o in outcomes)
    assert all(o.original_dimensions == (1190, 1684) for o in outcomes)
    assert not batch.failures
    assert document.renders == [(n, 2.0) for n in range(1, 6)]


def test_selected_pages_keep_selection_order(paged):
    batch = paged.compress_pages(FakeDocument(page_count=5), [4, 2], Preset.for_target(150))
    assert [o.page_number for o in batch.outcomes] == [4, 2]


def test_failed_page_does_not_stop_the_rest(paged):
    batch = paged.compress_pages(FakeDocument(page_count=5, fail_pages={3}), "all", Preset.for_target(150))

    assert [item.label for item in batch.items] == [f"page {n}" for n in range(1, 6)]
    assert [o.page_number for o in batch.outcomes] == [1, 2, 4, 5]
    assert len(batch.failures) == 1
    assert isinstance(batch.failures[0].error, DecodeFailure)
    assert batch.failures[0].label == "page 3"


def test_pages_as_documents_use_source_page_box(paged, factory):
    document = FakeDocument(page_count=2, page_size=(612, 792))
    batch = paged.compress_pages(document, "all", Preset.for_target(150, config.PDF))

    assert all(o.output_format == config.PDF for o in batch.outcomes)
    assert all(o.new_size_bytes <= 150 * 1024 for o in batch.outcomes)
    boxes = [(b.pages[0].width, b.pages[0].height) for b in factory.builders]
    assert boxes == [(612, 792), (612, 792)]


def test_whole_document_lands_in_band(paged, factory):
    document = FakeDocument(page_count=3)
    outcome = paged.compress_document(document, Preset(1_900_000, config.PDF, 1200, 1600))

    assert outcome.quality == pytest.approx(0.65)
    assert outcome.attempts == 2
    assert 0.9 * 1_900_000 <= outcome.new_size_bytes <= 1_900_000
    assert not outcome.exceeded_target
    assert outcome.page_count == 3
    assert outcome.new_dimensions == (595, 842)
    builder = factory.builders[-1]
    assert len(builder.pages) == 3
    assert all((p.width, p.height) == (595, 842) for p in builder.pages)


def test_whole_document_gives_up_at_floor(paged):
    outcome = paged.compress_document(FakeDocument(page_count=3), Preset(10_000, config.PDF, 1200, 1600))

    assert outcome.exceeded_target
    assert outcome.attempts <= config.DOCUMENT_SEARCH.max_iterations
    assert outcome.attempts == 7
    assert outcome.quality == pytest.approx(0.2)


def test_whole_document_passthrough(paged, factory):
    data = b"%PDF-1.7" + b"\x00" * 1000
    document = FakeDocument(page_count=3, source_bytes=data)
    outcome = paged.compress_document(document, Preset(50_000, config.PDF, 1200, 1600))

    assert outcome.output_bytes is data
    assert outcome.already_within_budget
    assert document.renders == []
    assert factory.builders == []


def test_whole_document_needs_document_output(paged):
    with pytest.raises(InvalidPreset):
        paged.compress_document(FakeDocument(), Preset.for_target(150))


def test_document_progress_ends_once():
    seen = []
    PagedDocumentCompressor(FakeEncoder(), None).compress_pages(
        FakeDocument(page_count=3), "all", Preset.for_target(150), seen.append)
    assert seen == sorted(seen)
    assert seen.count(100) == 1
    assert seen[-1] == 100


def test_rendered_page_shrinks_after_overshoot_despite_large_document(paged):
    # At 150x212 even the quality floor is 3807 bytes, far below half the document.
    document = FakeDocument(page_count=2)
    batch = paged.compress_pages(document, [1], Preset.for_target(3))

    outcome = batch.outcomes[0]
    w, h = outcome.new_dimensions
    assert w < 150 and h < 212
    assert not outcome.exceeded_target
    assert outcome.new_size_bytes <= 3 * 1024
    assert outcome.original_size_bytes == 2_000_000
