"""Business rules for a joinery workshop: orders, tasks, assignments, work time, pay and notices."""

__version__ = "0.1.0"