"""Tests for configuration loading and validation."""

import pytest
import yaml

from swissplan.io.loader import (
    load_switzerland_config, load_prevoyance_config, load_household, get_canton_and_commune,
)


def _rewrite(root, name, mutate):
    """Load a shipped config file, apply ``mutate`` to the dict and write it back."""
    path = root / "2025" / name
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    mutate(data)
    path.write_text(yaml.safe_dump(data, allow_unicode=True, sort_keys=False), encoding="utf-8")


class TestConfigurationLoading:

    def test_load_existing_configs(self, config_root, year_2025):
        config = load_switzerland_config(config_root, year_2025)
        assert config.currency == "CHF"
        assert {"GE", "VD", "VS", "FR", "NE", "JU", "BE", "ZH", "TI"} <= set(config.cantons)
        assert config.cantons["GE"].strategy == "geneva"
        assert config.cantons["VD"].strategy == "vaud"
        assert config.cantons["BE"].bracket_table == "high_coefficient"
        assert len(config.federal.segments) == 47

    def test_load_prevoyance(self, config_root, year_2025):
        prev = load_prevoyance_config(config_root, year_2025)
        assert prev.avs.min_monthly == 1260
        assert prev.avs.max_monthly == 2520
        assert prev.lpp.conversion_rate_percent == 6.8

    def test_load_nonexistent_year(self, config_root):
        with pytest.raises(FileNotFoundError):
            load_switzerland_config(config_root, 9999)
        with pytest.raises(FileNotFoundError):
            load_prevoyance_config(config_root, 9999)


class TestCantonLookup:

    def test_defaults(self, swiss_config):
        canton, commune = get_canton_and_commune(swiss_config)
        assert canton.name == "Genève"
        assert commune.coefficient == 0.455

    def test_other_canton_defaults_to_first_commune(self, swiss_config):
        canton, commune = get_canton_and_commune(swiss_config, "ZH")
        assert canton.name == "Zürich"
        assert commune.name == "Zürich"

    def test_unknown_canton(self, swiss_config):
        with pytest.raises(ValueError, match="Canton 'XX' not found"):
            get_canton_and_commune(swiss_config, "XX")

    def test_unknown_commune(self, swiss_config):
        with pytest.raises(ValueError, match="Commune 'paris' not found"):
            get_canton_and_commune(swiss_config, "GE", "paris")


class TestConfigValidation:
    """Broken tables are rejected at load time."""

    def test_federal_gap(self, tmp_config_root):
        def mutate(data):
            data["federal"]["segments"][1]["from"] = 18600
            data["federal"]["segments"][1]["at_income"] = 18600
        _rewrite(tmp_config_root, "switzerland.yaml", mutate)
        with pytest.raises(ValueError, match="Gap in federal segments"):
            load_switzerland_config(tmp_config_root, 2025)

    def test_brackets_not_increasing(self, tmp_config_root):
        def mutate(data):
            data["strategies"]["geneva"]["brackets"][2]["lower"] = 10
        _rewrite(tmp_config_root, "switzerland.yaml", mutate)
        with pytest.raises(ValueError, match="strictly increasing"):
            load_switzerland_config(tmp_config_root, 2025)

    def test_decreasing_points(self, tmp_config_root):
        def mutate(data):
            data["strategies"]["vaud"]["income_points"][3][1] = 1.0
        _rewrite(tmp_config_root, "switzerland.yaml", mutate)
        with pytest.raises(ValueError, match="must not decrease"):
            load_switzerland_config(tmp_config_root, 2025)

    def test_unknown_bracket_table(self, tmp_config_root):
        def mutate(data):
            data["cantons"]["VS"]["bracket_table"] = "missing"
        _rewrite(tmp_config_root, "switzerland.yaml", mutate)
        with pytest.raises(ValueError, match="unknown bracket_table"):
            load_switzerland_config(tmp_config_root, 2025)

    def test_coefficient_too_high(self, tmp_config_root):
        def mutate(data):
            data["cantons"]["GE"]["communes"]["geneve"]["coefficient"] = 45.5
        _rewrite(tmp_config_root, "switzerland.yaml", mutate)
        with pytest.raises(ValueError, match="seems too high"):
            load_switzerland_config(tmp_config_root, 2025)

    def test_default_commune_missing(self, tmp_config_root):
        def mutate(data):
            data["defaults"]["commune"] = "lausanne"
        _rewrite(tmp_config_root, "switzerland.yaml", mutate)
        with pytest.raises(ValueError, match="Default commune"):
            load_switzerland_config(tmp_config_root, 2025)

    def test_unknown_confession(self, tmp_config_root):
        def mutate(data):
            data["ecclesiastical"]["GE"]["jedi"] = 0.05
        _rewrite(tmp_config_root, "switzerland.yaml", mutate)
        with pytest.raises(ValueError, match="unknown confession"):
            load_switzerland_config(tmp_config_root, 2025)

    def test_unknown_strategy_tag(self, tmp_config_root):
        def mutate(data):
            data["cantons"]["ZH"]["strategy"] = "zug_special"
        _rewrite(tmp_config_root, "switzerland.yaml", mutate)
        with pytest.raises(ValueError):
            load_switzerland_config(tmp_config_root, 2025)

    def test_avs_min_above_max(self, tmp_config_root):
        def mutate(data):
            data["avs"]["min_monthly"] = 3000
        _rewrite(tmp_config_root, "prevoyance.yaml", mutate)
        with pytest.raises(ValueError, match="min_monthly"):
            load_prevoyance_config(tmp_config_root, 2025)

    def test_early_age_not_before_retirement(self, tmp_config_root):
        def mutate(data):
            data["lpp"]["early_retirement_ages"] = [60, 65]
        _rewrite(tmp_config_root, "prevoyance.yaml", mutate)
        with pytest.raises(ValueError, match="early retirement age 65"):
            load_prevoyance_config(tmp_config_root, 2025)

    def test_insurance_type_in_two_groups(self, tmp_config_root):
        def mutate(data):
            data["insurance"]["groups"]["health"].append("life")
        _rewrite(tmp_config_root, "prevoyance.yaml", mutate)
        with pytest.raises(ValueError, match="Insurance type 'life'"):
            load_prevoyance_config(tmp_config_root, 2025)


class TestHousehold:

    def test_load(self, household_file):
        household = load_household(household_file)
        assert household.name == "Alex Muster"
        assert len(household.lpp) == 2
        assert household.tax_profile.annual_income == 90000
        assert household.tax_profile.deduction_third_pillar == 7056

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_household(tmp_path / "nope.yaml")

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_household(path)
