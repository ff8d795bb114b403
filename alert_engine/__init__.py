"""
Движок правил оповещений и метрик
"""

__version__ = "0.1.0"
