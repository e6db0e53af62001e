def str2bool(v):
  return v.lower() in ("yes", "true", "t", "1")


def short_id(value: str, length: int = 8) -> str:
  """First `length` characters of an identifier, for names and log lines."""
  return (value or "")[:length]
