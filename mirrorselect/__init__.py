"""Mirror Select – probes mirror hosts and redirects to the fastest one."""

__version__ = "1.0.0"
