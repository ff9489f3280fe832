"""Geo Attendance package.

Location-based attendance decision engine organized by feature modules
(positioning, proximity, policy, attendance, ...) with a thin Flask
controller layer and service/repository layers.
"""
