"""Staffing domain - workload ranking and staff assignment"""
