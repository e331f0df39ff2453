"""Staff attendance reconciliation core.

Feature modules (attendance, balances, leaves, site_visits) each carry a
model, a repository protocol with its MySQL implementation, a service and a
thin Flask controller. Every mutation runs in one unit of work.
"""
