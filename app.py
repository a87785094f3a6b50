#!/usr/bin/env python
"""
Development server script for running the MoodFlow backend.
Supports different environments through environment files:
- .env, .env.development, .env.staging, .env.production

Usage:
  FLASK_ENV=development python app.py  # Development mode, SQLite unless DATABASE_URL is set
  FLASK_ENV=production python app.py   # Production mode with PostgreSQL and Supabase Auth
"""
import os
from backend.moodflow.config.env_manager import load_environment
from backend.moodflow import create_app

# Load environment variables based on FLASK_ENV
env_vars = load_environment()
flask_env = os.environ.get('FLASK_ENV', 'development')

if __name__ == "__main__":
    # Create the Flask application
    app = create_app()
    port = int(os.environ.get("PORT", 5000))

    # Print environment info
    print(f"Starting MoodFlow on http://localhost:{port}")
    print(f"Environment: {flask_env}")

    # Check database configuration
    if os.environ.get('DATABASE_URL', '').startswith(('postgresql://', 'postgres://')):
        print(f"Using database: {os.environ.get('DATABASE_URL').split('@')[0].split(':')[0]}://...@...")
    else:
        print(f"Using database: {app.config['SQLALCHEMY_DATABASE_URI']}")
        with app.app_context():
            from backend.moodflow.models import db
            db.create_all()

    if app.config.get('SUPABASE_USE_FOR_AUTH'):
        print(f"Using Supabase Auth: {os.environ.get('SUPABASE_URL')}")
    if not app.config.get('GEMINI_API_KEY'):
        print("Warning: GEMINI_API_KEY not set, AI analysis returns placeholder results")

    # Run the Flask application
    debug = os.environ.get('DEBUG', 'False').lower() == 'true'
    app.run(host=os.environ.get('HOST', '0.0.0.0'), port=port, debug=debug)
