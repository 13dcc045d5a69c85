"""Tests for format sniffing and the PNG / WebP / JPEG / AVIF walkers."""

import struct

import pytest
from PIL import Image
from PIL.PngImagePlugin import PngInfo

from builders import (build_avif, build_jpeg, build_png, build_tiff, build_webp,
                      png_chunk, unicode_comment)
from config import Config
from metadata_extractor import (FORMAT_AVIF, FORMAT_JPEG, FORMAT_PNG, FORMAT_UNKNOWN,
                                FORMAT_WEBP, MetadataExtractor, TextRecord)


@pytest.mark.parametrize("data, expected", [
    (build_png(), FORMAT_PNG),
    (build_webp(), FORMAT_WEBP),
    (b'\xff\xd8\xff\xe0', FORMAT_JPEG),
    (build_avif(b''), FORMAT_AVIF),
    (build_avif(b'', brand=b'avis'), FORMAT_AVIF),
    (build_avif(b'', brand=b'heic'), FORMAT_UNKNOWN),
    (b'\x00\x00\x00\x00', FORMAT_UNKNOWN),
    (b'', FORMAT_UNKNOWN),
    (b'\x89PNG', FORMAT_UNKNOWN),
    (b'RIFF\x00\x00\x00\x00WAVE', FORMAT_UNKNOWN),
])
def test_sniff_format(data, expected):
    assert MetadataExtractor.sniff_format(data) == expected


def test_png_text_chunks_in_order():
    data = build_png((b'parameters', b'steps: 20'), (b'Comment', b'{"a":1}'), (b'Software', b'NovelAI'))
    result = MetadataExtractor.extract(data)
    assert result.format == FORMAT_PNG
    assert result.records == [
        TextRecord('parameters', 'steps: 20'),
        TextRecord('Comment', '{"a":1}'),
        TextRecord('Software', 'NovelAI'),
    ]


def test_png_invalid_value_becomes_empty():
    result = MetadataExtractor.extract(build_png((b'prompt', b'\xff\xfe bad')))
    assert result.records == [TextRecord('prompt', '')]


def test_png_invalid_keyword_is_skipped():
    result = MetadataExtractor.extract(build_png((b'\xffkey', b'v'), (b'prompt', b'ok')))
    assert result.records == [TextRecord('prompt', 'ok')]


def test_png_text_without_separator_is_skipped():
    data = build_png(extra_chunks=[(b'tEXt', b'no separator')])
    assert MetadataExtractor.extract(data).records == []


def test_png_other_text_chunks_are_ignored():
    data = build_png(extra_chunks=[(b'iTXt', b'prompt\x00\x00\x00\x00\x00hidden')])
    assert MetadataExtractor.extract(data).records == []


def test_png_overlong_chunk_stops_walk():
    good = png_chunk(b'tEXt', b'parameters\x00steps: 20')
    bad = struct.pack('>I', 10_000) + b'tEXt' + b'prompt\x00never'
    data = build_png()[:8] + good + bad
    assert MetadataExtractor.extract(data).records == [TextRecord('parameters', 'steps: 20')]


def test_png_written_by_pillow(tmp_path):
    info = PngInfo()
    info.add_text('parameters', 'steps: 20, sampler: Euler a')
    info.add_text('Description', '1girl, solo')
    path = tmp_path / 'sd.png'
    Image.new('RGB', (4, 4)).save(path, pnginfo=info)

    result = MetadataExtractor.extract_file(path)
    assert result.format == FORMAT_PNG
    assert result.records == [
        TextRecord('parameters', 'steps: 20, sampler: Euler a'),
        TextRecord('Description', '1girl, solo'),
    ]


def test_webp_exif_chunk():
    exif = b'Exif\x00\x00' + build_tiff(unicode_comment("a cat"))
    data = build_webp((b'VP8X', b'\x00' * 10), (b'EXIF', exif))
    result = MetadataExtractor.extract(data)
    assert result.format == FORMAT_WEBP
    assert result.records == [TextRecord('UserComment', 'a cat', Config.SOURCE_EXIF)]


def test_webp_odd_chunk_is_padded():
    # the EXIF chunk behind a 3-byte chunk is only reachable when padding is skipped
    exif = build_tiff(b'ASCII\x00\x00\x00marker')
    data = build_webp((b'ODD ', b'abc'), (b'EXIF', exif))
    assert data[12 + 8 + 3] == 0
    assert MetadataExtractor.extract(data).records[0].value == 'marker'


def test_webp_only_first_exif_chunk_is_used():
    first = build_tiff(b'ASCII\x00\x00\x00first')
    second = build_tiff(b'ASCII\x00\x00\x00second')
    data = build_webp((b'EXIF', first), (b'EXIF', second))
    assert [r.value for r in MetadataExtractor.extract(data).records] == ['first']


def test_webp_overlong_chunk_yields_nothing():
    data = build_webp((b'VP8 ', b'\x00' * 4))
    data += b'EXIF' + struct.pack('<I', 10_000) + b'Exif\x00\x00'
    assert MetadataExtractor.extract(data).records == []


def test_webp_without_exif():
    assert MetadataExtractor.extract(build_webp((b'VP8 ', b'\x00' * 6))).records == []


def test_jpeg_user_comment():
    data = build_jpeg(build_tiff(unicode_comment("steps: 20", 'utf-16-be')))
    result = MetadataExtractor.extract(data)
    assert result.format == FORMAT_JPEG
    assert result.records == [TextRecord('UserComment', 'steps: 20', Config.SOURCE_EXIF)]


def test_jpeg_exif_outside_search_window_is_ignored():
    padding = b'\xff\xfe' + struct.pack('>H', 2) + b'\x00' * Config.EXIF_SEARCH_WINDOW
    data = b'\xff\xd8\xff' + padding + b'Exif\x00\x00' + build_tiff(b'ASCII\x00\x00\x00late')
    assert MetadataExtractor.extract(data).records == []


def test_avif_user_comment():
    data = build_avif(build_tiff(b'ASCII\x00\x00\x00Steps: 28', order='<'))
    result = MetadataExtractor.extract(data)
    assert result.format == FORMAT_AVIF
    assert result.records[0].value == 'Steps: 28'


def test_unknown_format_has_no_records():
    result = MetadataExtractor.extract(b'\x00' * 4)
    assert not result.supported
    assert result.records == []


def _pillow_exif(payload: bytes) -> Image.Exif:
    exif = Image.Exif()
    exif[0x9286] = payload
    return exif


def test_jpeg_written_by_pillow(tmp_path):
    path = tmp_path / 'nai.jpg'
    exif = _pillow_exif(unicode_comment("masterpiece, best quality"))
    Image.new('RGB', (8, 8)).save(path, 'JPEG', exif=exif.tobytes())
    records = MetadataExtractor.extract_file(path).records
    assert [r.value for r in records] == ["masterpiece, best quality"]


def test_webp_written_by_pillow(tmp_path):
    from PIL import features
    if not features.check('webp'):
        pytest.skip("Pillow built without WebP support")
    path = tmp_path / 'a1111.webp'
    exif = _pillow_exif(b'ASCII\x00\x00\x00Steps: 20, Seed: 1')
    Image.new('RGB', (8, 8)).save(path, 'WEBP', exif=exif.tobytes(), lossless=True)
    records = MetadataExtractor.extract_file(path).records
    assert [r.value for r in records] == ['Steps: 20, Seed: 1']


def test_empty_file(tmp_path):
    path = tmp_path / 'empty.png'
    path.write_bytes(b'')
    assert MetadataExtractor.extract_file(path).format == FORMAT_UNKNOWN


def test_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        MetadataExtractor.extract_file(tmp_path / 'missing.png')
