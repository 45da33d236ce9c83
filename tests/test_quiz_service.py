import pytest

from docquiz.core.exceptions import NotFoundError


async def test_store_quiz_collection(stored_quizzes, quiz_service):
    assert len(stored_quizzes) == 2
    assert stored_quizzes[0].collectionId == stored_quizzes[1].collectionId
    assert stored_quizzes[0].aiMetadata.model == "test-model"
    assert stored_quizzes[0].passingScore == 70

    fetched = await quiz_service.get_quiz(stored_quizzes[0].quizId, "user_1")
    assert fetched.title == "Cell Biology Basics"
    assert fetched.questions[0].correctAnswer == "Value 1B"


async def test_get_quiz_is_owner_scoped(stored_quizzes, quiz_service):
    with pytest.raises(NotFoundError):
        await quiz_service.get_quiz(stored_quizzes[0].quizId, "user_2")


async def test_soft_delete_hides_quiz_but_keeps_record(stored_quizzes, quiz_service):
    quiz_id = stored_quizzes[0].quizId
    deleted = await quiz_service.soft_delete_quiz(quiz_id, "user_1")
    assert deleted.status == "deleted"
    assert deleted.deletedAt is not None

    with pytest.raises(NotFoundError):
        await quiz_service.get_quiz(quiz_id, "user_1")
    assert (await quiz_service.get_quiz(quiz_id, "user_1", active_only=False)).status == "deleted"

    with pytest.raises(NotFoundError):
        await quiz_service.soft_delete_quiz(quiz_id, "user_1")


async def test_list_quizzes_filters(stored_quizzes, quiz_service):
    assert len(await quiz_service.list_quizzes("doc_test", "user_1")) == 2
    mc = await quiz_service.list_quizzes("doc_test", "user_1", quiz_type="multiple_choice")
    assert [q.type for q in mc] == ["multiple_choice"]
    assert await quiz_service.list_quizzes("doc_test", "user_1", difficulty="hard") == []


async def test_collection_stats(stored_quizzes, quiz_service):
    stats = await quiz_service.get_collection_stats("doc_test", "user_1")
    assert stats.totalQuizzes == 2
    assert stats.totalQuestions == 20
    assert stats.types == {"multiple_choice": 1, "true_false": 1}
    assert stats.averageEstimatedTime == 12.5


async def test_update_analytics_running_average(stored_quizzes, quiz_service):
    quiz_id = stored_quizzes[0].quizId
    await quiz_service.update_analytics(quiz_id, 80.0, 60000)
    await quiz_service.update_analytics(quiz_id, 40.0, 30000)

    analytics = (await quiz_service.get_quiz(quiz_id, "user_1")).analytics
    assert analytics.attemptCount == 2
    assert analytics.averageScore == 60.0
    assert analytics.averageTime == 45000.0
    assert analytics.lastAttemptAt is not None
