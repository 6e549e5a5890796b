"""Lambda handler for the Uploads API using Mangum."""
from mangum import Mangum
from uploads_api.main import create_app

# Create FastAPI app
app = create_app()

# Adapters are opened in the lifespan, so keep it on
handler = Mangum(app, lifespan="auto")

# Export handler for Lambda runtime
lambda_handler = handler
