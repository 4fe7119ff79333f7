"""LeadHub-Engine: multi-tenant CRM inbox backend."""

__version__ = "0.1.0"
