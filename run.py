"""Application entry point."""
import os
from dotenv import load_dotenv

# Load environment variables before the config classes read them
load_dotenv()

from attendance_engine import create_app  # noqa: E402

# Create Flask app
app = create_app(os.getenv('FLASK_ENV', 'development'))

if __name__ == '__main__':
    # Development server
    port = int(os.environ.get('PORT', 5000))
    host = os.environ.get('HOST', '127.0.0.1')
    debug = os.environ.get('FLASK_ENV') == 'development'

    app.run(host=host, port=port, debug=debug)
