import json
import sys

import pytest

from stock_valuation.analysis.aggregate import determine_recommendation
from stock_valuation.domain.types import FinancialStatements
from stock_valuation.domain.types import Quote
from stock_valuation.domain.types import Recommendation
from stock_valuation.errors import DomainError
from stock_valuation.run import analyze_payload
from stock_valuation.run import analyze_stock
from stock_valuation.run import build_dcf_inputs
from stock_valuation.run import estimate_growth_rate
from stock_valuation.run import main


class TestEstimateGrowthRate:
  """Tests for estimate_growth_rate."""

  def test_half_of_two_year_change(self, sample_financials):
    """(1600 - 1250) / 1250 / 2 = 0.14"""
    assert estimate_growth_rate(sample_financials) == pytest.approx(0.14)

  def test_two_years_uses_oldest(self, two_year_financials):
    """(1600 - 1400) / 1400 / 2"""
    assert estimate_growth_rate(two_year_financials) == pytest.approx(
        200 / 1400 / 2)

  def test_default_without_history(self):
    assert estimate_growth_rate(FinancialStatements()) == 0.08


class TestBuildDcfInputs:
  """Tests for build_dcf_inputs."""

  def test_latest_statements(self, sample_quote, sample_financials):
    inputs = build_dcf_inputs(sample_quote, sample_financials, 0.14)

    assert inputs.starting_fcf == 180
    assert inputs.shares_outstanding == 95
    assert inputs.total_debt == 300
    assert inputs.cash == 200
    assert inputs.analyst_growth_rate == 0.14
    assert inputs.projection_years == 20

  def test_fcf_estimated_from_earnings(self):
    quote = Quote(symbol='X', price=10.0, shares_outstanding=50.0, eps=2.0)
    inputs = build_dcf_inputs(quote, FinancialStatements(), 0.05)

    assert inputs.starting_fcf == pytest.approx(2.0 * 50.0 * 0.8)

  def test_shares_fall_back_to_income(self, sample_financials):
    quote = Quote(symbol='X', price=10.0, shares_outstanding=0.0)
    inputs = build_dcf_inputs(quote, sample_financials, 0.05)

    assert inputs.shares_outstanding == 95


class TestAnalyzeStock:
  """End-to-end tests of analyze_stock and analyze_payload."""

  def test_payload(self, sample_payload):
    analysis = analyze_payload(sample_payload)

    assert analysis.quote.symbol == 'TEST'
    assert analysis.financials.years_of_data == 5
    assert analysis.dcf.projections[0].fcf == pytest.approx(205.2)
    assert analysis.dcf.wacc == pytest.approx(0.10)
    assert analysis.fundamental_score.score == 74
    assert analysis.recommendation == determine_recommendation(
        analysis.margin_of_safety, analysis.fundamental_score.score)
    for score in (analysis.technical_score.score,
                  analysis.fundamental_score.score,
                  analysis.confidence_score.score):
      assert isinstance(score, int)
      assert 0 <= score <= 100

  def test_fair_value_consistent(self, sample_payload):
    analysis = analyze_payload(sample_payload)

    assert analysis.upside == pytest.approx(
        (analysis.fair_value - 40.0) / 40.0)
    assert analysis.buy_zone.high == pytest.approx(analysis.fair_value * 0.75)

  def test_to_dict_is_json(self, sample_payload):
    analysis = analyze_payload(sample_payload)
    data = analysis.to_dict()

    assert json.loads(json.dumps(data)) == data
    assert data['recommendation'] in {r.value for r in Recommendation}
    assert data['financials']['income'][0]['date'] == '2023-12-31'

  def test_deterministic(self, sample_payload):
    assert (analyze_payload(sample_payload).to_dict() == analyze_payload(
        sample_payload).to_dict())

  def test_payload_config_override(self, sample_payload):
    sample_payload['config'] = {'risk_free_rate': 0.03}
    analysis = analyze_payload(sample_payload)

    assert analysis.dcf.wacc == pytest.approx(0.03 + 1.0 * (0.10 - 0.03))

  def test_partial_weight_override(self, sample_payload):
    sample_payload['config'] = {'technical_weights': {'trend': 1.0}}
    analysis = analyze_payload(sample_payload)

    assert len(analysis.technical_score.signals) == 5
    assert 0 <= analysis.technical_score.score <= 100

  def test_plain_price_list(self, sample_payload):
    closes = [r['close'] for r in reversed(sample_payload['prices'])]
    baseline = analyze_payload(sample_payload)
    sample_payload['prices'] = closes
    analysis = analyze_payload(sample_payload)

    assert analysis.technical_indicators == baseline.technical_indicators

  def test_no_shares_raises(self):
    quote = Quote(symbol='X', price=10.0, shares_outstanding=0.0, eps=1.0)

    with pytest.raises(DomainError):
      analyze_stock(quote, FinancialStatements(), ())

  def test_zero_price_raises(self, sample_financials):
    quote = Quote(symbol='X', price=0.0, shares_outstanding=95.0, eps=1.0)

    with pytest.raises(DomainError):
      analyze_stock(quote, sample_financials, ())


class TestMain:
  """Tests for the CLI entrypoint."""

  def test_writes_output(self, sample_payload, tmp_path, monkeypatch):
    input_path = tmp_path / 'payload.json'
    output_path = tmp_path / 'result.json'
    input_path.write_text(json.dumps(sample_payload))
    monkeypatch.setattr(sys, 'argv', [
        'run', '--input',
        str(input_path), '--output',
        str(output_path)
    ])

    main()

    result = json.loads(output_path.read_text())
    assert result['quote']['symbol'] == 'TEST'
    assert 'recommendation' in result
    assert len(result['dcf']['projections']) == 20

  def test_config_file(self, sample_payload, tmp_path, monkeypatch):
    input_path = tmp_path / 'payload.json'
    config_path = tmp_path / 'config.json'
    output_path = tmp_path / 'result.json'
    input_path.write_text(json.dumps(sample_payload))
    config_path.write_text(json.dumps({'phase2_years': 5}))
    monkeypatch.setattr(sys, 'argv', [
        'run', '--input',
        str(input_path), '--config',
        str(config_path), '--output',
        str(output_path)
    ])

    main()

    result = json.loads(output_path.read_text())
    assert len(result['dcf']['projections']) == 15
