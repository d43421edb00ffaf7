"""Task board API: projects and tasks backed by Supabase."""

__version__ = "1.0.0"
