"""AWS client and provider adapters."""
