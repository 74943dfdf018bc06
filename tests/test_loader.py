# tests/test_loader.py
import pytest

from raffle_health.config import DATA_DIR
from raffle_health.data.loader import load_model_from_xml, parse_model
from raffle_health.errors import ConfigError

SAMPLE = DATA_DIR / "raffle_health_config.xml"

DOC = """<raffleHealthModel>
  <baselines>
    <newCustomers ltv="45" targetLtvToCac="2.5" {cpa}/>
    <retention crr20d="0.08" gmvPerRetainedUser20d="35" baseExistingCustomers="5000"/>
  </baselines>
  {thresholds}
  <raffles>
    <raffle id="R1">
      <meta name="One" startDate="2025-12-01" endDate="2025-12-20"/>
      <targets targetGmv="100000" averageTicketPrice="2.5" expectedAovNew="40" {aov_ret}/>
      <budget total="15000" newSplit="0.75" retSplit="0.25"/>
    </raffle>
  </raffles>
</raffleHealthModel>"""

THRESHOLDS = """<thresholds>
    <gmv green="0.9" amber="0.7"/>
    <retentionProgress green="0.95" amber="0.8"/>
    <cacOverTarget green="1.0" amber="1.2"/>
    <cpaOverTarget green="1.0" amber="1.3"/>
  </thresholds>"""


def _doc(cpa="", thresholds=THRESHOLDS, aov_ret='expectedAovRet="42"'):
    return DOC.format(cpa=cpa, thresholds=thresholds, aov_ret=aov_ret)


def test_parses_raffles_and_thresholds():
    m = parse_model(_doc())
    cfg = m.raffles["R1"]
    assert cfg.duration_days == 20
    assert cfg.target_cac_new == pytest.approx(18)
    assert cfg.baseline_cpa_new is None
    assert m.thresholds.gmv_green == 0.9
    assert m.thresholds.cpa_amber_over_target == 1.3


def test_optional_cpa_baseline():
    m = parse_model(_doc(cpa='cpaNew="22"'))
    assert m.raffles["R1"].baseline_cpa_new == 22


def test_missing_section_is_fatal():
    with pytest.raises(ConfigError, match="baselines/thresholds/raffles"):
        parse_model(_doc(thresholds=""))


def test_missing_attribute_is_named():
    with pytest.raises(ConfigError, match="expectedAovRet"):
        parse_model(_doc(aov_ret=""))


def test_wrong_root_and_broken_xml():
    with pytest.raises(ConfigError):
        parse_model("<somethingElse/>")
    with pytest.raises(ConfigError):
        parse_model("<raffleHealthModel>")


def test_ships_sample_config():
    m = load_model_from_xml(SAMPLE)
    assert "XMAS25" in m.raffles
    assert m.raffles["XMAS25"].duration_days == 20


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_model_from_xml(tmp_path / "nope.xml")


def test_mixed_timezone_dates_are_a_config_error():
    doc = _doc().replace('endDate="2025-12-20"', 'endDate="2025-12-20T00:00:00+00:00"')
    with pytest.raises(ConfigError, match="R1"):
        parse_model(doc)
