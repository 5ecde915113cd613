"""Tests for the household itinerary engine."""
