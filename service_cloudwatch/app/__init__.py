"""
CloudWatch exporter package.

Receives flushed statsd-style metric snapshots (counters, gauges, timers,
sets), shapes them into CloudWatch datapoints and ships them with
PutMetricData, one backend instance per configured destination.
"""
