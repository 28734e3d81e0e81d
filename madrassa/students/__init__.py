"""Student records: models, validation, API client, roster views and export."""
