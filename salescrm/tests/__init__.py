"""Test suite for the sales CRM backend."""
