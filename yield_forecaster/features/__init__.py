"""Feature package for the yield forecaster.

Modules
-------
schema: named feature getters, default ridge/boosted feature sets, dense
        vector construction and per-mode target normalization
"""
