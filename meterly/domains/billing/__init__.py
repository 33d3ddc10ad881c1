"""Billing domain: pricing, billing run checkpoints and the BillingScheduler."""
