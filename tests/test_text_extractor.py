import pytest

from docquiz.core.exceptions import TextExtractionError
from docquiz.services.text_extractor import (
    detect_language,
    extract_text,
    rate_complexity,
    rate_quality,
)

ENGLISH = (
    "The mitochondria is the powerhouse of the cell. It produces energy for the cell "
    "and is found in most eukaryotic organisms. "
) * 30


def test_extract_text_from_txt(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text(ENGLISH, encoding="utf-8")

    result = extract_text(str(path))
    assert result.text == ENGLISH.strip()
    assert result.page_count == 1
    assert result.word_count == len(result.text.split())
    assert result.language == "en"


def test_extract_rejects_unsupported_and_missing_files(tmp_path):
    with pytest.raises(TextExtractionError):
        extract_text(str(tmp_path / "slides.pptx"))
    with pytest.raises(TextExtractionError):
        extract_text(str(tmp_path / "missing.txt"))


def test_extract_rejects_empty_text(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("   \n  ", encoding="utf-8")
    with pytest.raises(TextExtractionError):
        extract_text(str(path))


def test_extract_rejects_corrupt_pdf(tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"%PDF-1.4 this is not really a pdf")
    with pytest.raises(TextExtractionError):
        extract_text(str(path))


def test_detect_language():
    assert detect_language(ENGLISH) == "en"
    assert detect_language("El gato está en la casa y el perro es de los niños. " * 5) == "es"
    assert detect_language("Клетка является основной единицей жизни.") == "ru"
    assert detect_language("") == "en"


def test_rate_complexity_bands():
    assert rate_complexity("") == "very_simple"
    assert rate_complexity("The cat sat. The dog ran. ") == "very_simple"
    dense = ("Intergovernmental organizations systematically institutionalize multilateral "
             "cooperation mechanisms notwithstanding considerable jurisdictional heterogeneity "
             "across participating constitutional democracies worldwide ") * 3 + "."
    assert rate_complexity(dense) == "very_complex"


def test_rate_quality_bands():
    assert rate_quality("") == "poor"
    assert rate_quality("1234 5678 #### %%%% " * 20) == "poor"
    assert rate_quality("word " * 100) == "fair"
    assert rate_quality("word " * 300) == "excellent"
