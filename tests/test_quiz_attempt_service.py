import pytest

from docquiz.core.exceptions import BadInputError, InvalidStateError, NotFoundError
from docquiz.models.quiz_attempt import SessionInfo
from docquiz.services.quiz_attempt_service import is_answer_correct, resolve_user_answer
from docquiz.utils.quiz_parser import parse_quiz_collection


@pytest.fixture
def mc_quiz(stored_quizzes):
    return stored_quizzes[0]


@pytest.fixture
def tf_quiz(stored_quizzes):
    return stored_quizzes[1]


async def test_start_attempt_creates_then_resumes(attempt_service, mc_quiz):
    first = await attempt_service.start_attempt(mc_quiz.quizId, "user_1", SessionInfo(deviceType="desktop"))
    assert first.isExisting is False
    assert first.attempt.status == "in_progress"
    assert first.attempt.quizSnapshot.totalQuestions == 10
    assert len(first.questions) == 10
    assert "correctAnswer" not in first.questions[0].model_dump()

    second = await attempt_service.start_attempt(mc_quiz.quizId, "user_1")
    assert second.isExisting is True
    assert second.attempt.attemptId == first.attempt.attemptId


async def test_start_attempt_on_unknown_or_foreign_quiz(attempt_service, mc_quiz):
    with pytest.raises(NotFoundError):
        await attempt_service.start_attempt("quiz_missing", "user_1")
    with pytest.raises(NotFoundError):
        await attempt_service.start_attempt(mc_quiz.quizId, "user_2")


async def test_start_attempt_on_deleted_quiz(attempt_service, quiz_service, mc_quiz):
    await quiz_service.soft_delete_quiz(mc_quiz.quizId, "user_1")
    with pytest.raises(NotFoundError):
        await attempt_service.start_attempt(mc_quiz.quizId, "user_1")


async def test_submit_answer_by_text_and_index(attempt_service, mc_quiz):
    started = await attempt_service.start_attempt(mc_quiz.quizId, "user_1")
    attempt_id = started.attempt.attemptId

    by_text = await attempt_service.submit_answer(attempt_id, "user_1", 0, "Value 1B", 1200)
    assert by_text.isCorrect is True
    assert by_text.pointsEarned == 10
    assert by_text.feedback == "Well done."
    assert by_text.progress.answered == 1
    assert by_text.progress.percentage == 10.0

    by_index = await attempt_service.submit_answer(attempt_id, "user_1", 1, 0, 800)
    assert by_index.isCorrect is False
    assert by_index.correctAnswer == "Value 2B"
    assert by_index.feedback == "Review this concept."
    assert by_index.progress.answered == 2


async def test_submit_answer_rejects_bad_input(attempt_service, mc_quiz):
    started = await attempt_service.start_attempt(mc_quiz.quizId, "user_1")
    attempt_id = started.attempt.attemptId

    with pytest.raises(BadInputError):
        await attempt_service.submit_answer(attempt_id, "user_1", 10, "Value 1B", 0)
    with pytest.raises(BadInputError):
        await attempt_service.submit_answer(attempt_id, "user_1", -1, "Value 1B", 0)
    with pytest.raises(BadInputError):
        await attempt_service.submit_answer(attempt_id, "user_1", 0, "   ", 0)
    with pytest.raises(BadInputError):
        await attempt_service.submit_answer(attempt_id, "user_1", 0, "Value 1B", -5)
    with pytest.raises(NotFoundError):
        await attempt_service.submit_answer(attempt_id, "user_2", 0, "Value 1B", 0)


async def test_complete_scores_six_of_ten(attempt_service, quiz_service, mc_quiz):
    started = await attempt_service.start_attempt(mc_quiz.quizId, "user_1")
    attempt_id = started.attempt.attemptId

    for index in range(10):
        n = index + 1
        answer = f"Value {n}B" if index < 6 else f"Value {n}A"
        await attempt_service.submit_answer(attempt_id, "user_1", index, answer, 1000)

    result = await attempt_service.complete_attempt(attempt_id, "user_1")
    assert result.score == 60
    assert result.percentage == 60.0
    assert result.correctAnswers == 6
    assert result.totalQuestions == 10
    assert result.passed is False
    assert result.performanceLevel == "below_average"

    quiz = await quiz_service.get_quiz(mc_quiz.quizId, "user_1")
    assert quiz.analytics.attemptCount == 1
    assert quiz.analytics.averageScore == 60.0


async def test_unanswered_questions_score_zero(attempt_service, mc_quiz):
    started = await attempt_service.start_attempt(mc_quiz.quizId, "user_1")
    attempt_id = started.attempt.attemptId
    await attempt_service.submit_answer(attempt_id, "user_1", 0, "Value 1B", 0)

    result = await attempt_service.complete_attempt(attempt_id, "user_1")
    assert result.score == 10
    assert result.percentage == 10.0
    assert result.performanceLevel == "poor"


async def test_resubmission_counts_latest_answer_only(attempt_service, mc_quiz):
    started = await attempt_service.start_attempt(mc_quiz.quizId, "user_1")
    attempt_id = started.attempt.attemptId

    await attempt_service.submit_answer(attempt_id, "user_1", 0, "Value 1B", 0)
    await attempt_service.submit_answer(attempt_id, "user_1", 0, "Value 1C", 0)
    progress = (await attempt_service.submit_answer(attempt_id, "user_1", 0, "Value 1B", 0)).progress
    assert progress.answered == 1

    result = await attempt_service.complete_attempt(attempt_id, "user_1")
    assert result.score == 10

    attempts = await attempt_service.list_attempts("user_1", quiz_id=mc_quiz.quizId)
    assert len(attempts[0].answers) == 3


async def test_completed_attempt_is_frozen(attempt_service, mc_quiz):
    started = await attempt_service.start_attempt(mc_quiz.quizId, "user_1")
    attempt_id = started.attempt.attemptId
    await attempt_service.complete_attempt(attempt_id, "user_1")

    with pytest.raises(InvalidStateError):
        await attempt_service.submit_answer(attempt_id, "user_1", 0, "Value 1B", 0)
    with pytest.raises(InvalidStateError):
        await attempt_service.complete_attempt(attempt_id, "user_1")


async def test_new_attempt_after_completion(attempt_service, mc_quiz):
    first = await attempt_service.start_attempt(mc_quiz.quizId, "user_1")
    await attempt_service.complete_attempt(first.attempt.attemptId, "user_1")

    second = await attempt_service.start_attempt(mc_quiz.quizId, "user_1")
    assert second.isExisting is False
    assert second.attempt.attemptId != first.attempt.attemptId


async def test_results_only_for_completed_attempts(attempt_service, tf_quiz):
    started = await attempt_service.start_attempt(tf_quiz.quizId, "user_1")
    attempt_id = started.attempt.attemptId
    await attempt_service.submit_answer(attempt_id, "user_1", 0, "true", 500)

    with pytest.raises(InvalidStateError):
        await attempt_service.get_results(attempt_id, "user_1")

    await attempt_service.complete_attempt(attempt_id, "user_1")
    results = await attempt_service.get_results(attempt_id, "user_1")
    assert len(results.questionDetails) == 10
    first = results.questionDetails[0]
    assert first.isCorrect is True
    assert first.userAnswer == "true"
    assert first.correctAnswer == "True"
    assert results.questionDetails[1].userAnswer is None
    assert results.questionDetails[1].pointsEarned == 0


async def test_list_attempts_filters(attempt_service, mc_quiz, tf_quiz):
    first = await attempt_service.start_attempt(mc_quiz.quizId, "user_1")
    await attempt_service.start_attempt(tf_quiz.quizId, "user_1")
    await attempt_service.complete_attempt(first.attempt.attemptId, "user_1")

    assert len(await attempt_service.list_attempts("user_1")) == 2
    completed = await attempt_service.list_attempts("user_1", status="completed")
    assert [a.attemptId for a in completed] == [first.attempt.attemptId]
    assert await attempt_service.list_attempts("user_2") == []


def test_resolve_user_answer(parsed_mc_quiz):
    question = parsed_mc_quiz.questions[0]
    assert resolve_user_answer(question, "multiple_choice", 1) == "Value 1B"
    assert resolve_user_answer(question, "multiple_choice", "2") == "Value 1C"
    assert resolve_user_answer(question, "multiple_choice", " Value 1A ") == "Value 1A"
    with pytest.raises(BadInputError):
        resolve_user_answer(question, "multiple_choice", 4)
    with pytest.raises(BadInputError):
        resolve_user_answer(question, "multiple_choice", True)


def test_answer_matching_rules(parsed_mc_quiz):
    question = parsed_mc_quiz.questions[0]
    assert is_answer_correct(question, "multiple_choice", "Value 1B")
    assert not is_answer_correct(question, "multiple_choice", "value 1b")

    fill = question.model_copy(update={"correctAnswer": "Mitochondria", "options": []})
    assert is_answer_correct(fill, "fill_blank", "  mitochondria ")


@pytest.fixture
def parsed_mc_quiz(collection_response, config):
    return parse_quiz_collection(collection_response(), config).quizzes[0]
