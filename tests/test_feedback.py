import httpx
import pytest
import respx

from fitrec.config import settings
from fitrec.services.domain import FitFeedback, FitOutcome
from fitrec.services.feedback import bias, latest_feedback
from fitrec.services.feedback_api import FeedbackApiClient


def fb(outcome, category="tops", size="M"):
    return FitFeedback(size_given=size, category=category, outcome=FitOutcome(outcome))


@pytest.mark.parametrize("outcome,expected", [
    ("too_small", 3),
    ("slightly_small", 3),
    ("perfect", 2),
    ("slightly_large", 1),
    ("too_large", 1),
])
def test_bias_moves_one_band(outcome, expected):
    assert bias(2, 6, [fb(outcome)], "tops") == expected


def test_bias_clamps_to_chart():
    assert bias(5, 6, [fb("too_small")], "tops") == 5
    assert bias(0, 6, [fb("too_large")], "tops") == 0


def test_no_history_is_noop():
    assert bias(2, 6, None, "tops") == 2
    assert bias(2, 6, [], "tops") == 2


def test_other_categories_are_ignored():
    assert bias(2, 6, [fb("too_small", category="bottoms")], "tops") == 2


def test_most_recent_record_wins():
    # oldest first
    history = [fb("too_large"), fb("too_large"), fb("too_small")]
    assert bias(2, 6, history, "tops") == 3
    history = [fb("too_small"), fb("too_large", category="shoes")]
    assert bias(2, 6, history, "tops") == 3


def test_latest_feedback_is_newest_same_category_record():
    history = [fb("too_small", size="S"), fb("perfect", size="M"), fb("perfect", size="L", category="bottoms")]
    assert latest_feedback(history, "tops").size_given == "M"
    assert latest_feedback(history, "shoes") is None


def test_feedback_category_matches_case_insensitively():
    history = [fb("too_large", category="Tops ")]
    assert latest_feedback(history, "TOPS").size_given == "M"
    assert bias(2, 6, history, "tops") == 1


def test_bias_does_not_mutate_history():
    history = [fb("too_small")]
    snapshot = list(history)
    bias(1, 3, history, "tops")
    assert history == snapshot


@pytest.mark.asyncio
@respx.mock
async def test_feedback_client_parses_history():
    route = respx.get(f"{settings.feedback_api_base}/users/u-1/fit-feedback").mock(
        return_value=httpx.Response(200, json={"feedback": [
            {"size_given": "M", "category": "Tops", "outcome": "too_small", "returned": True},
            {"sizeGiven": "L", "category": "tops", "fitFeedback": "perfect"},
            {"size_given": "S", "category": "tops", "outcome": "bad-value"},
        ]})
    )
    history = await FeedbackApiClient().get_feedback("u-1", "tops")
    assert route.called
    assert route.calls.last.request.url.params["category"] == "tops"
    assert [(f.size_given, f.category, f.outcome, f.returned) for f in history] == [
        ("M", "tops", FitOutcome.too_small, True),
        ("L", "tops", FitOutcome.perfect, False),
    ]


@pytest.mark.asyncio
@respx.mock
async def test_feedback_client_raises_on_server_error():
    respx.get(f"{settings.feedback_api_base}/users/u-2/fit-feedback").mock(return_value=httpx.Response(503))
    with pytest.raises(httpx.HTTPStatusError):
        await FeedbackApiClient().get_feedback("u-2", "tops")


@pytest.mark.asyncio
@respx.mock
async def test_feedback_client_keeps_user_id_inside_its_path_segment():
    route = respx.route().mock(return_value=httpx.Response(200, json=[]))
    await FeedbackApiClient().get_feedback("../../admin/secrets?x=", "tops")
    request = route.calls.last.request
    assert b"/users/..%2F..%2Fadmin%2Fsecrets%3Fx%3D/fit-feedback" in request.url.raw_path
    assert dict(request.url.params) == {"category": "tops"}


@pytest.mark.asyncio
@pytest.mark.parametrize("user_id", ["", ".", ".."])
async def test_feedback_client_rejects_dot_segment_user_ids(user_id):
    with pytest.raises(ValueError):
        await FeedbackApiClient().get_feedback(user_id, "tops")
