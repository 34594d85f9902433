"""Anomaly injection with ground-truth bookkeeping."""

from .injector import INJECTORS, InjectionResult, inject
from .session import InjectionSession
from .taxonomy import ANOMALY_TEST_STEPS, TEST_STEPS, TestStep, get_test_step, get_test_step_ids

__all__ = [
    "INJECTORS",
    "InjectionResult",
    "inject",
    "InjectionSession",
    "ANOMALY_TEST_STEPS",
    "TEST_STEPS",
    "TestStep",
    "get_test_step",
    "get_test_step_ids",
]
