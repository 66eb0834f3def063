"""
Crypto Backtester
-----------------
Technical indicators (RSI, MACD, Bollinger Bands) and a single-position
backtest simulator for time-ordered crypto price series.
"""
