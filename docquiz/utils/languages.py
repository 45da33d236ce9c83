"""
Language packs for prompt building and quiz validation
FILE: docquiz/utils/languages.py
"""
from pydantic import BaseModel
from typing import Dict


class LanguagePack(BaseModel):
    """Localized tokens and strings for one language"""
    code: str
    name: str
    true_token: str
    false_token: str
    no_explanation: str
    default_strength: str
    default_weakness: str
    # Directive, in the language itself, to write all quiz content in it
    write_instruction: str
    # Characters of the language's script allowed in quiz titles (regex class body)
    script_range: str = ""

    class Config:
        frozen = True


LANGUAGE_PACKS: Dict[str, LanguagePack] = {
    "en": LanguagePack(
        code="en", name="English",
        write_instruction="Write all titles, questions, options, explanations and feedback in English.",
        true_token="True", false_token="False",
        no_explanation="No explanation provided",
        default_strength="You understood this concept correctly.",
        default_weakness="Review this concept in the document.",
    ),
    "es": LanguagePack(
        code="es", name="Spanish",
        write_instruction="Escribe todos los títulos, preguntas, opciones, explicaciones y comentarios en español.",
        true_token="Verdadero", false_token="Falso",
        no_explanation="Sin explicación",
        default_strength="Has entendido este concepto correctamente.",
        default_weakness="Repasa este concepto en el documento.",
        script_range="À-ÿ",
    ),
    "fr": LanguagePack(
        code="fr", name="French",
        write_instruction="Rédigez tous les titres, questions, options, explications et commentaires en français.",
        true_token="Vrai", false_token="Faux",
        no_explanation="Aucune explication fournie",
        default_strength="Vous avez bien compris ce concept.",
        default_weakness="Révisez ce concept dans le document.",
        script_range="À-ÿŒœ",
    ),
    "de": LanguagePack(
        code="de", name="German",
        write_instruction="Schreibe alle Titel, Fragen, Antwortoptionen, Erklärungen und Rückmeldungen auf Deutsch.",
        true_token="Wahr", false_token="Falsch",
        no_explanation="Keine Erklärung vorhanden",
        default_strength="Du hast dieses Konzept richtig verstanden.",
        default_weakness="Wiederhole dieses Konzept im Dokument.",
        script_range="À-ÿ",
    ),
    "it": LanguagePack(
        code="it", name="Italian",
        write_instruction="Scrivi tutti i titoli, le domande, le opzioni, le spiegazioni e i commenti in italiano.",
        true_token="Vero", false_token="Falso",
        no_explanation="Nessuna spiegazione fornita",
        default_strength="Hai compreso correttamente questo concetto.",
        default_weakness="Rivedi questo concetto nel documento.",
        script_range="À-ÿ",
    ),
    "pt": LanguagePack(
        code="pt", name="Portuguese",
        write_instruction="Escreva todos os títulos, perguntas, opções, explicações e comentários em português.",
        true_token="Verdadeiro", false_token="Falso",
        no_explanation="Nenhuma explicação fornecida",
        default_strength="Você entendeu este conceito corretamente.",
        default_weakness="Revise este conceito no documento.",
        script_range="À-ÿ",
    ),
    "ru": LanguagePack(
        code="ru", name="Russian",
        write_instruction="Пишите все заголовки, вопросы, варианты ответов, объяснения и отзывы на русском языке.",
        true_token="Верно", false_token="Неверно",
        no_explanation="Объяснение отсутствует",
        default_strength="Вы правильно поняли эту концепцию.",
        default_weakness="Повторите эту концепцию в документе.",
        script_range="Ѐ-ӿ",
    ),
    "zh": LanguagePack(
        code="zh", name="Chinese",
        write_instruction="请用中文撰写所有标题、问题、选项、解释和反馈。",
        true_token="正确", false_token="错误",
        no_explanation="未提供解释",
        default_strength="你正确理解了这个概念。",
        default_weakness="请在文档中复习这个概念。",
        script_range="一-鿿",
    ),
    "ja": LanguagePack(
        code="ja", name="Japanese",
        write_instruction="タイトル、問題、選択肢、解説、フィードバックはすべて日本語で書いてください。",
        true_token="正しい", false_token="誤り",
        no_explanation="説明はありません",
        default_strength="この概念を正しく理解しています。",
        default_weakness="文書でこの概念を復習してください。",
        script_range="぀-ヿ一-鿿",
    ),
    "ko": LanguagePack(
        code="ko", name="Korean",
        write_instruction="모든 제목, 문제, 선택지, 해설 및 피드백을 한국어로 작성하세요.",
        true_token="참", false_token="거짓",
        no_explanation="설명이 없습니다",
        default_strength="이 개념을 올바르게 이해했습니다.",
        default_weakness="문서에서 이 개념을 복습하세요.",
        script_range="가-힯",
    ),
    "ar": LanguagePack(
        code="ar", name="Arabic",
        write_instruction="اكتب جميع العناوين والأسئلة والخيارات والشروحات والملاحظات باللغة العربية.",
        true_token="صحيح", false_token="خطأ",
        no_explanation="لا يوجد تفسير",
        default_strength="لقد فهمت هذا المفهوم بشكل صحيح.",
        default_weakness="راجع هذا المفهوم في المستند.",
        script_range="؀-ۿ",
    ),
    "hi": LanguagePack(
        code="hi", name="Hindi",
        write_instruction="सभी शीर्षक, प्रश्न, विकल्प, व्याख्याएँ और प्रतिक्रिया हिंदी में लिखें।",
        true_token="सही", false_token="गलत",
        no_explanation="कोई स्पष्टीकरण नहीं दिया गया",
        default_strength="आपने यह अवधारणा सही समझी।",
        default_weakness="दस्तावेज़ में इस अवधारणा को दोहराएं।",
        script_range="ऀ-ॿ",
    ),
}

DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES = tuple(LANGUAGE_PACKS.keys())


def get_language_pack(code: str) -> LanguagePack:
    """Return the pack for a language code, falling back to English"""
    if not code:
        return LANGUAGE_PACKS[DEFAULT_LANGUAGE]
    return LANGUAGE_PACKS.get(code.strip().lower()[:2], LANGUAGE_PACKS[DEFAULT_LANGUAGE])
