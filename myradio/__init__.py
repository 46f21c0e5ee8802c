"""MyRadio request gate."""
