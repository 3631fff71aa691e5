from inspector_dispatch.config import Settings


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("DISPATCH_OVERLOAD_THRESHOLD", "90")
    monkeypatch.setenv("DISPATCH_OPTIMIZATION_STRATEGY", "efficiency")

    loaded = Settings()

    assert loaded.overload_threshold == 90.0
    assert loaded.optimization_strategy == "efficiency"


def test_osrm_base_url_is_normalised():
    assert Settings(osrm_base_url=" http://osrm.local:5000/ ").osrm_base_url == "http://osrm.local:5000"
    assert Settings(osrm_base_url="/").osrm_base_url is None


def test_only_consumed_settings_are_declared():
    assert "workday_start" not in Settings.model_fields
    assert "app_name" not in Settings.model_fields
