"""Ports connecting the reconciliation core to stores and providers."""
