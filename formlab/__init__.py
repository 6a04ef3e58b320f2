"""Formlab: A/B experimentation engine for form documents."""
