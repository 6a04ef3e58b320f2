"""Shared test fixtures for Formlab tests."""

import random

import pytest

from formlab.domains.experiments import ExperimentConfig, ExperimentEngine


@pytest.fixture
def engine() -> ExperimentEngine:
    return ExperimentEngine(config=ExperimentConfig(), rng=random.Random(1234))


@pytest.fixture
def two_variant_definition() -> dict:
    return {
        "name": "Green submit button",
        "description": "Does a green button lift conversions?",
        "hypothesis": "A green submit button will increase conversion rate by 10%",
        "formId": "form_contact",
        "variants": [
            {"id": "A", "name": "Control", "formId": "form_contact", "modifications": []},
            {
                "id": "B",
                "name": "Green Button",
                "formId": "form_contact",
                "modifications": [
                    {
                        "type": "style",
                        "target": "colors.primary",
                        "operation": "update",
                        "value": "#22c55e",
                        "originalValue": "#6366f1",
                    },
                    {
                        "type": "content",
                        "target": "submitButtonText",
                        "operation": "update",
                        "value": "Get started",
                    },
                ],
            },
        ],
        "trafficSplit": [50, 50],
        "goals": [{"type": "conversion"}],
    }


@pytest.fixture
def sample_form() -> dict:
    return {
        "id": "form_contact",
        "name": "Contact us",
        "description": "We reply within a day",
        "fields": [
            {"id": "name", "type": "text", "label": "Name", "required": True, "width": "full"},
            {"id": "email", "type": "email", "label": "Email", "required": True, "width": "full"},
            {"id": "message", "type": "textarea", "label": "Message", "required": False},
        ],
        "settings": {
            "submitButtonText": "Send",
            "successMessage": "Thanks!",
            "collectEmails": True,
        },
        "styling": {
            "theme": "modern-light",
            "colors": {"primary": "#6366f1", "text": "#111111"},
            "fontFamily": "Inter",
        },
    }
