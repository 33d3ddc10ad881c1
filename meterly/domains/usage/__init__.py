"""Usage domain: consumption recording and per-period aggregation.

ConsumptionRecorder publishes ConsumptionRecorded at the HTTP boundary;
UsageAggregator consumes it via the EventBus.
"""
