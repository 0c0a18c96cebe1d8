"""Request middleware: bearer auth and CORS."""
