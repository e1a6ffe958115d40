"""Protocol adapters: one subpackage per indexed protocol."""
