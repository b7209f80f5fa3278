"""
ML layer: pure-Python small-sample regression for yield forecasting.

Modules
-------
linalg     : Dense list-of-lists matrix helpers (transpose, multiply,
             Gauss-Jordan inverse with pivot clamping).
scaler     : Per-column standardization fitted on the training matrix.
ridge      : Closed-form ridge regression with an unpenalized intercept.
intervals  : Symmetric prediction band around a point forecast.
tree       : Greedy regression tree (tagged Leaf/Split nodes).
boosting   : Squared-error gradient boosting over regression trees.
baseline   : Median per-day rate coefficients for the guardrail.
guardrail  : Clamps boosted predictions into a baseline band.
metrics    : In-sample R² and MAE.
"""
