"""CloudWatch shaping, routing, batching and client construction."""
