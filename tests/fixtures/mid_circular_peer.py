import mid_circular  # noqa: F401

value = 2
