"""
Web Server Gateway Interface (WSGI) entry point
"""

import os
from democms import create_app

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "8080")))
