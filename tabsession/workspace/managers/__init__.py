"""Data access managers for the persistence service.

Managers accept an ``AsyncSession`` as a parameter and raise domain
exceptions (``LookupError``), never HTTP exceptions -- that translation is
the router's responsibility.
"""
