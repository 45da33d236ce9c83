from docquiz.services.text_chunker import estimate_tokens, truncate_to_token_budget, chunk_stats


def test_estimate_tokens():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2
    assert estimate_tokens("abcdef", chars_per_token=3) == 2


def test_short_text_is_unchanged():
    text = "A short document."
    assert truncate_to_token_budget(text, 100) == text


def test_empty_text_and_zero_budget():
    assert truncate_to_token_budget("", 100) == ""
    assert truncate_to_token_budget("some text", 0) == ""


def test_cuts_at_paragraph_break_near_end_of_budget():
    first = "a" * 80
    text = first + "\n\n" + "b" * 100
    result = truncate_to_token_budget(text, 25)  # 100 chars
    assert result == first


def test_ignores_paragraph_break_too_early_and_uses_sentence_end():
    text = "a" * 10 + "\n\n" + "b" * 75 + "." + "c" * 100
    result = truncate_to_token_budget(text, 25)
    assert result == "a" * 10 + "\n\n" + "b" * 75 + "."


def test_hard_cut_when_no_break_in_window():
    text = "x" * 500
    result = truncate_to_token_budget(text, 25)
    assert result == "x" * 100


def test_result_is_prefix_within_budget():
    text = ("Sentence number one. " * 40 + "\n\n") * 10
    for budget in (10, 50, 133, 400):
        result = truncate_to_token_budget(text, budget)
        assert text.startswith(result)
        assert len(result) <= budget * 4


def test_chunk_stats():
    stats = chunk_stats("x" * 400, "x" * 100)
    assert stats["original_tokens"] == 100
    assert stats["truncated_tokens"] == 25
    assert stats["was_truncated"] is True
    assert chunk_stats("abc", "abc")["was_truncated"] is False
