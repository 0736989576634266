"""Gym System package.

Core of the gym membership app: offline-tolerant attendance recording and
reconciliation, subscription lifecycle evaluation and identity resolution.
Organized by feature modules (users, attendance, subscriptions, sync, ...)
with a thin Flask controller layer over service/gateway layers.
"""
