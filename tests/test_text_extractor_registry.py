import pytest
from docx import Document
from openpyxl import Workbook

from shared.extractors.TextExtractorRegistry import TextExtractorRegistry
from shared.extractors.formats.TextExtractorDocx import TextExtractorDocx
from shared.extractors.formats.TextExtractorTxt import TextExtractorTxt
from shared.extractors.formats.TextExtractorXlsx import TextExtractorXlsx
from shared.models.errors import UnsupportedFormatError


@pytest.fixture
def registry() -> TextExtractorRegistry:
    return TextExtractorRegistry()


@pytest.mark.parametrize("filename", ["a.pdf", "b.DOCX", "c.doc", "notes.txt", "sheet.Xlsx", "dir.v2/report.PDF"])
def test_supported_extensions_are_case_insensitive(registry, filename):
    assert registry.is_supported_extension(filename)


@pytest.mark.parametrize("filename", ["image.png", "archive.zip", "README", "slides.pptx"])
def test_unsupported_extensions(registry, filename):
    assert not registry.is_supported_extension(filename)


def test_supported_extension_list(registry):
    assert set(registry.get_supported_extensions()) == {".pdf", ".docx", ".doc", ".txt", ".xlsx"}


def test_get_extractor_dispatches_by_extension(registry):
    assert isinstance(registry.get_extractor("/tmp/x.TXT"), TextExtractorTxt)
    assert isinstance(registry.get_extractor("/tmp/x.docx"), TextExtractorDocx)
    assert isinstance(registry.get_extractor("/tmp/x.xlsx"), TextExtractorXlsx)


def test_get_extractor_rejects_unknown_format(registry):
    with pytest.raises(UnsupportedFormatError, match=r"Unsupported format: \.png"):
        registry.get_extractor("/tmp/photo.png")


async def test_txt_extraction(registry, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("Línea uno\n\nLínea dos", encoding="utf-8")
    text = await registry.get_extractor(str(path)).do_extract(str(path))
    assert text == "Línea uno\n\nLínea dos"


async def test_docx_extraction_keeps_paragraph_breaks(registry, tmp_path):
    path = tmp_path / "doc.docx"
    document = Document()
    document.add_paragraph("First paragraph.")
    document.add_paragraph("")
    document.add_paragraph("Second paragraph.")
    document.save(str(path))
    text = await registry.get_extractor(str(path)).do_extract(str(path))
    assert text == "First paragraph.\n\nSecond paragraph."


async def test_xlsx_extraction_lists_sheets_and_rows(registry, tmp_path):
    path = tmp_path / "book.xlsx"
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Ventas"
    sheet.append(["Producto", "Total"])
    sheet.append(["Mate", 120])
    workbook.create_sheet("Vacía")
    workbook.save(str(path))
    text = await registry.get_extractor(str(path)).do_extract(str(path))
    assert text == "=== Hoja: Ventas ===\nProducto | Total\nMate | 120"
