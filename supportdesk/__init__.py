"""SupportDesk: customer-support ticketing on Supabase."""

__version__ = "0.1"
