"""
Takeoff / estimate calculation core.

Pure Python math. No database, no HTTP, no clock.
Given validated design inputs (schemas.DeckInputs / schemas.FenceInputs),
produce a priced takeoff, a labor plan and the estimate rollup. Same inputs
in, same outputs out — safe to call from any number of requests at once.

Pipeline: geometry -> sizing -> stock_cutting -> takeoff -> labor -> estimate
"""
