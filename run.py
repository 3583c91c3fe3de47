#!/usr/bin/env python3
"""Entry point for the Hoops Match engine API."""
import os
from backend.app import create_app

config_name = os.environ.get('FLASK_ENV', 'development')
app = create_app(config_name)

# Seed the achievement catalog and sample courts on first run
with app.app_context():
    from backend.services.seeder import seed_achievements, seed_courts
    achievements = seed_achievements()
    courts = seed_courts()
    if achievements or courts:
        print(f"🏀 Seeded {achievements} achievements and {courts} courts")

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5001))
    print(f"🏀 Hoops Match starting on http://localhost:{port}")
    app.run(host='0.0.0.0', port=port, debug=(config_name == 'development'))
