"""
R-Multiple Edge Engine
======================
Quantitative risk analysis of a trading system's edge, implementing:
- R-multiple descriptive statistics (win rate, expectancy, SQN)
- Monte Carlo path resampling with extremal equity curves
- Optimal-F risk-fraction sweep under six competing objectives
- Portfolio heat recommendation from SQN and worst trade
- Correlation-weighted risk budget pruning across assets
"""

__version__ = "1.0.0"
