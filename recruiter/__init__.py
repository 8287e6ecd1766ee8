"""Recruiter MT generation service."""
