"""
Configuration module for the billing engine.
"""
from .billing import BillingConfiguration, resolve_billing_configuration
from .settings import BillingSystemConfig, get_config, load_config, reload_config

__all__ = [
    'BillingConfiguration',
    'BillingSystemConfig',
    'get_config',
    'load_config',
    'reload_config',
    'resolve_billing_configuration',
]
