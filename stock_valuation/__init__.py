'''
Stock valuation and scoring engine.

This package turns a market quote, multi-year financial statements and a
price history into a structured valuation: multi-phase DCF with reverse DCF,
earnings-multiple and Graham values, technical and fundamental scores, a
confidence score, risk flags and a recommendation. The math is pure; data
arrives already fetched and passes through domain.normalize first.

Usage:
  from stock_valuation.config import ValuationConfig
  from stock_valuation.run import analyze_payload

  analysis = analyze_payload(payload, config=ValuationConfig.default())
  print(analysis.recommendation.value, f'{analysis.fair_value:.2f}')
'''
