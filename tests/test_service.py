import io

import fitz
import pytest
from PIL import Image

from target_compressor import CompressionService, config
from target_compressor.errors import DecodeFailure, InvalidPreset
from target_compressor.models import Preset
from target_compressor.presets import exam_preset
from target_compressor.service import format_file_size, output_name

from conftest import make_pdf, textured


@pytest.fixture(scope="module")
def service():
    return CompressionService()


def encoded(img: Image.Image, fmt: str, **params) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt, **params)
    return buf.getvalue()


def test_format_file_size():
    assert format_file_size(512) == "512 B"
    assert format_file_size(2048) == "2.0 KB"
    assert format_file_size(3 * 1024 * 1024) == "3.00 MB"


def test_output_name():
    assert output_name("scan", config.JPEG) == "scan_compressed.jpg"
    assert output_name("scan", config.PNG, 2) == "scan_page2.png"


def test_large_png_to_jpeg(service):
    data = encoded(textured(1200, 900), "PNG")
    target = 60 * 1024
    batch = service.compress_bytes(data, Preset.for_target(60), name="photo.png")

    [outcome] = batch.outcomes
    assert outcome.original_size_bytes == len(data)
    assert outcome.new_size_bytes <= target or outcome.exceeded_target
    w, h = outcome.new_dimensions
    assert w <= 600 and h <= 800
    assert abs(w / h - 4 / 3) < 0.02
    with Image.open(io.BytesIO(outcome.output_bytes)) as img:
        assert img.format == "JPEG"
        assert img.size == (w, h)


def test_small_jpeg_passes_through(service):
    data = encoded(Image.new("RGB", (64, 48), (1, 2, 3)), "JPEG", quality=80)
    [outcome] = service.compress_bytes(data, Preset.for_target(100)).outcomes
    assert outcome.output_bytes == data
    assert outcome.already_within_budget


def test_exam_photo_has_exact_box(service):
    data = encoded(textured(800, 600), "JPEG", quality=95)
    [outcome] = service.compress_bytes(data, exam_preset("ibps", "photo")).outcomes
    assert outcome.new_dimensions == (200, 240)
    with Image.open(io.BytesIO(outcome.output_bytes)) as img:
        assert img.size == (200, 240)


def test_image_to_pdf(service):
    data = encoded(textured(900, 600), "PNG")
    [outcome] = service.compress_bytes(data, Preset.for_target(150, config.PDF)).outcomes
    assert outcome.output_format == config.PDF
    with fitz.open(stream=outcome.output_bytes, filetype="pdf") as doc:
        assert doc.page_count == 1
        assert doc[0].rect.width == pytest.approx(595)


def test_pdf_pages_to_images(service):
    batch = service.compress_bytes(make_pdf(3), Preset.for_target(100), pages=[1, 3], name="scan.pdf")
    assert [o.page_number for o in batch.outcomes] == [1, 3]
    assert all(o.page_count == 3 for o in batch.outcomes)
    assert all(o.output_format == config.JPEG for o in batch.outcomes)


def test_pdf_already_small_passes_through(service):
    data = make_pdf(2)
    [outcome] = service.compress_bytes(data, Preset.for_target(500, config.PDF)).outcomes
    assert outcome.already_within_budget
    assert outcome.output_bytes == data


def test_pdf_rebuilt_under_budget(service):
    data = make_pdf(2)
    target = len(data) - 1
    preset = Preset(target, config.PDF, 1200, 1600)
    [outcome] = service.compress_bytes(data, preset).outcomes
    with fitz.open(stream=outcome.output_bytes, filetype="pdf") as doc:
        assert doc.page_count == 2
    assert outcome.quality is not None
    assert outcome.attempts >= 1


def test_bad_page_selection_raises(service):
    with pytest.raises(InvalidPreset):
        service.compress_bytes(make_pdf(2), Preset.for_target(100), pages=[5])


def test_undecodable_input_is_recorded(service):
    batch = service.compress_bytes(b"garbage bytes", Preset.for_target(100), name="x.jpg")
    assert batch.outcomes == []
    assert isinstance(batch.failures[0].error, DecodeFailure)


def test_compress_path_writes_outputs(service, tmp_path):
    src = tmp_path / "scan.pdf"
    src.write_bytes(make_pdf(2))
    out = tmp_path / "out"
    batch = service.compress_path(src, Preset.for_target(100), out)

    paths = [item.path for item in batch.items]
    assert paths == [out / "scan_page1.jpg", out / "scan_page2.jpg"]
    assert all(p.exists() for p in paths)


def test_compress_paths_isolates_missing_files(service, tmp_path):
    good = tmp_path / "photo.png"
    good.write_bytes(encoded(textured(400, 300), "PNG"))
    missing = tmp_path / "missing.png"
    seen = []
    results = service.compress_paths([good, missing], Preset.for_target(50), progress=seen.append)

    assert results[good].items[0].ok
    assert results[good].items[0].path == tmp_path / "photo_compressed.jpg"
    assert isinstance(results[missing].failures[0].error, DecodeFailure)
    assert seen[-1] == 100 and seen.count(100) == 1


def test_compress_paths_records_page_selection_per_file(service, tmp_path):
    long_doc = tmp_path / "long.pdf"
    long_doc.write_bytes(make_pdf(4))
    short_doc = tmp_path / "short.pdf"
    short_doc.write_bytes(make_pdf(2))
    results = service.compress_paths([long_doc, short_doc], Preset.for_target(150), pages=[3])

    assert [o.page_number for o in results[long_doc].outcomes] == [3]
    assert results[long_doc].items[0].path.exists()
    assert isinstance(results[short_doc].failures[0].error, InvalidPreset)


def test_compress_paths_rejects_bad_preset_up_front(service, tmp_path):
    src = tmp_path / "photo.png"
    src.write_bytes(encoded(textured(100, 100), "PNG"))
    with pytest.raises(InvalidPreset):
        service.compress_paths([src], Preset(0, config.JPEG, 800, 600))
    assert not (tmp_path / "photo_compressed.jpg").exists()


def test_inspect():
    info = CompressionService.inspect(make_pdf(4), "a.pdf")
    assert info["is_pdf"] and info["pages"] == 4 and not info["is_encrypted"]
    assert CompressionService.inspect(b"abc", "a.jpg")["pages"] == 1
