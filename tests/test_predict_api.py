import httpx
import respx
from fastapi.testclient import TestClient

from fitrec.config import settings
from fitrec.dependencies import get_recommender
from fitrec.main import app
from fitrec.services.charts import ChartRepository, load_charts
from fitrec.services.recommender import Recommender

from conftest import CHEST_CHART


client = TestClient(app)
HEADERS = {"x-api-key": settings.api_key}


def _use(repo: ChartRepository) -> None:
    app.dependency_overrides[get_recommender] = lambda: Recommender(repo)


def test_predict_requires_auth():
    r = client.post("/v1/predict", json={"measurements": {"chest": 88}, "category": "tops"})
    assert r.status_code == 401


def test_predict_builtin_tops():
    payload = {
        "measurements": {"chest": 88, "waist": 73, "height": 170},
        "category": "tops",
        "preference": "loose",
    }
    r = client.post("/v1/predict", json=payload, headers=HEADERS)
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["size"] == "M"
    assert data["confidence"] == 100
    assert data["alternatives"][0] == {"size": "L", "confidence": 90.0, "note": "for relaxed fit"}
    assert data["used_defaults"] is False
    assert data["fit_guarantee_eligible"] is True


def test_predict_inline_feedback():
    _use(ChartRepository(load_charts(CHEST_CHART), fallback_category=None))
    payload = {
        "measurements": {"chest": 94},
        "category": "tops",
        "feedback_history": [{"size_given": "L", "category": "tops", "outcome": "too_large", "returned": True}],
    }
    r = client.post("/v1/predict", json=payload, headers=HEADERS)
    assert r.status_code == 200, r.text
    assert r.json()["size"] == "M"
    assert r.json()["feedback_applied"] is True


@respx.mock
def test_predict_fetches_feedback_for_user():
    _use(ChartRepository(load_charts(CHEST_CHART), fallback_category=None))
    route = respx.get(f"{settings.feedback_api_base}/users/shopper-7/fit-feedback").mock(
        return_value=httpx.Response(200, json=[{"size_given": "M", "category": "tops", "outcome": "too_small"}])
    )
    payload = {"measurements": {"chest": 88}, "category": "tops", "user_id": "shopper-7"}
    r = client.post("/v1/predict", json=payload, headers=HEADERS)
    assert r.status_code == 200, r.text
    assert route.called
    assert r.json()["size"] == "L"


@respx.mock
def test_predict_feedback_service_down():
    respx.get(f"{settings.feedback_api_base}/users/shopper-8/fit-feedback").mock(return_value=httpx.Response(500))
    payload = {"measurements": {"chest": 88}, "category": "tops", "user_id": "shopper-8"}
    r = client.post("/v1/predict", json=payload, headers=HEADERS)
    assert r.status_code == 502


def test_predict_unknown_category_without_fallback():
    _use(ChartRepository(load_charts(CHEST_CHART), fallback_category=None))
    r = client.post("/v1/predict", json={"measurements": {"chest": 88}, "category": "capes"}, headers=HEADERS)
    assert r.status_code == 404
    assert r.json()["error_code"] == "UNKNOWN_CATEGORY"


def test_predict_unknown_category_with_fallback():
    r = client.post("/v1/predict", json={"measurements": {"chest": 88}, "category": "capes"}, headers=HEADERS)
    assert r.status_code == 200
    assert r.json()["chart_fallback"] is True
    assert r.json()["used_defaults"] is True


def test_predict_insufficient_data():
    _use(ChartRepository(load_charts(CHEST_CHART), fallback_category=None, defaults=None))
    r = client.post("/v1/predict", json={"measurements": {}, "category": "tops"}, headers=HEADERS)
    assert r.status_code == 422
    body = r.json()
    assert body["error_code"] == "INSUFFICIENT_DATA"
    assert "chest" in body["guidance"]


def test_predict_validates_request():
    r = client.post("/v1/predict", json={"measurements": {"chest": 88}, "category": "tops", "preference": "baggy"}, headers=HEADERS)
    assert r.status_code == 422
    r = client.post("/v1/predict", json={"measurements": {"chest": -3}, "category": "tops"}, headers=HEADERS)
    assert r.status_code == 422


def test_size_chart_listing_and_detail():
    r = client.get("/v1/size-charts", headers=HEADERS)
    assert r.status_code == 200
    assert set(r.json()["categories"]) == {"tops", "bottoms", "shoes"}

    r = client.get("/v1/size-charts/bottoms", headers=HEADERS)
    assert r.status_code == 200
    data = r.json()
    assert [s["label"] for s in data["sizes"]] == ["XS", "S", "M", "L", "XL", "XXL"]
    assert data["sizes"][2]["ranges"]["waist"] == [71.0, 76.0]
    assert data["recommended_size"] is None


def test_size_chart_with_measurements():
    r = client.get("/v1/size-charts/tops", params={"chest": 88}, headers=HEADERS)
    assert r.status_code == 200
    assert r.json()["recommended_size"] == "M"


def test_reload_size_charts(tmp_path, monkeypatch):
    repo = ChartRepository(load_charts(CHEST_CHART), fallback_category=None)
    _use(repo)
    path = tmp_path / "charts.json"
    path.write_text('{"tops": {"sizes": {"ONE": {"chest": [60, 140]}}}, "hats": {"sizes": {"58": {"head": [57, 59]}}}}')
    monkeypatch.setattr(settings, "size_charts_path", str(path))

    r = client.post("/v1/size-charts/reload", headers=HEADERS)
    assert r.status_code == 200
    assert r.json()["categories"] == ["tops", "hats"]
    r = client.post("/v1/predict", json={"measurements": {"chest": 88}, "category": "tops"}, headers=HEADERS)
    assert r.json()["size"] == "ONE"


def test_reload_rejects_bad_source(tmp_path, monkeypatch):
    _use(ChartRepository(load_charts(CHEST_CHART), fallback_category=None))
    path = tmp_path / "charts.json"
    path.write_text('{"tops": {"sizes": {"M": {"chest": [91, 86]}}}}')
    monkeypatch.setattr(settings, "size_charts_path", str(path))
    r = client.post("/v1/size-charts/reload", headers=HEADERS)
    assert r.status_code == 500
    assert r.json()["error_code"] == "CONFIGURATION_ERROR"


def test_predict_rejects_path_like_user_id():
    for user_id in ["../../admin/secrets?x=", "..", "a/b"]:
        payload = {"measurements": {"chest": 88}, "category": "tops", "user_id": user_id}
        r = client.post("/v1/predict", json=payload, headers=HEADERS)
        assert r.status_code == 422, user_id


def test_size_chart_detail_accepts_every_measurement():
    _use(ChartRepository(load_charts({
        "jackets": {"sizes": {
            "48": {"shoulders": [42, 45], "arm_length": [59, 62]},
            "50": {"shoulders": [45, 48], "arm_length": [62, 65]},
        }},
    }), fallback_category=None))
    r = client.get("/v1/size-charts/jackets", params={"shoulders": 46.5, "arm_length": 63}, headers=HEADERS)
    assert r.status_code == 200
    assert r.json()["recommended_size"] == "50"
