import pytest

from fitrec.services.charts import ChartRepository, load_charts


CHEST_CHART = {
    "tops": {
        "unit": "cm",
        "sizes": [
            {"label": "S", "ranges": {"chest": [81, 86]}},
            {"label": "M", "ranges": {"chest": [86, 91]}},
            {"label": "L", "ranges": {"chest": [91, 96]}},
        ],
    }
}


@pytest.fixture
def chest_chart():
    return load_charts(CHEST_CHART)["tops"]


@pytest.fixture
def chest_repo():
    return ChartRepository(load_charts(CHEST_CHART), fallback_category=None)


@pytest.fixture(autouse=True)
def _reset_rate_limit():
    from fitrec import main

    main._buckets.clear()
    yield
    main.app.dependency_overrides.clear()
