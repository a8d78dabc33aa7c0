"""Test fixtures for the guild battle analyzer."""
