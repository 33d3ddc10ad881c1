"""Idempotency domain: processed-event ledger and the idempotent-consumer base.

Every event consumer subclasses IdempotentConsumer; the container builds one
KeyValueIdempotencyLedger per consumer.
"""
