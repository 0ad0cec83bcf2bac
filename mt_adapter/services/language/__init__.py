"""Character classification and default target-language resolution."""
