"""Development backend implementing the auth endpoints the client consumes."""
