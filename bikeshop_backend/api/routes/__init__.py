from bikeshop_backend.api.routes import alerts, movements, stock
