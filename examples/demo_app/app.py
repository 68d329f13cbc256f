"""
CORS Diagnoser Demo API - Flask application with deliberately broken CORS

⚠️ WARNING: Every /api route below has a CORS mistake on purpose.
Use it to watch the diagnoser middleware at work, never as a template.

Broken routes:
- Missing Access-Control-Allow-Origin (/api/no-cors)
- Wildcard origin with credentials (/api/wildcard-credentials)
- Comma-separated origin list (/api/multiple-origins)
- Preflight without Allow-Methods / Allow-Headers (/api/preflight)
- Origin that never matches the caller (/api/wrong-origin)
"""

from flask import Flask, jsonify, request

from cors_diagnoser.backend.middleware import CorsDiagnoserMiddleware

app = Flask(__name__)
diagnoser = CorsDiagnoserMiddleware(app.wsgi_app, options={"verbose": True})
app.wsgi_app = diagnoser


@app.route('/api/no-cors', methods=['GET'])
def no_cors():
    """No CORS headers at all."""
    return jsonify({'data': 'browsers on other origins cannot read this'})


@app.route('/api/wildcard-credentials', methods=['GET'])
def wildcard_credentials():
    """Wildcard origin combined with credentials."""
    response = jsonify({'data': 'forbidden combination'})
    response.headers['Access-Control-Allow-Origin'] = '*'
    response.headers['Access-Control-Allow-Credentials'] = 'true'
    return response


@app.route('/api/multiple-origins', methods=['GET'])
def multiple_origins():
    """Several origins in one header value."""
    response = jsonify({'data': 'only one origin is allowed per response'})
    response.headers['Access-Control-Allow-Origin'] = 'http://localhost:3000, http://localhost:8080'
    return response


@app.route('/api/preflight', methods=['PUT', 'OPTIONS'])
def preflight():
    """Answers OPTIONS with an origin but nothing else."""
    if request.method == 'OPTIONS':
        response = app.make_default_options_response()
        response.headers['Access-Control-Allow-Origin'] = request.headers.get('Origin', '*')
        return response
    return jsonify({'updated': True})


@app.route('/api/wrong-origin', methods=['GET'])
def wrong_origin():
    """Hard-coded origin that is not the caller's."""
    response = jsonify({'data': 'allowed for someone else'})
    response.headers['Access-Control-Allow-Origin'] = 'https://admin.example.com'
    return response


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({'status': 'healthy', 'app': 'CORS Diagnoser Demo API'})


@app.route('/_cors/history', methods=['GET'])
def cors_history():
    """Errors recorded by the diagnoser, newest first."""
    return jsonify([
        {
            'timestamp': entry.timestamp.isoformat(),
            'route': entry.route,
            'method': entry.method,
            'origin': entry.origin,
            'count': entry.count,
            'issues': [d.issue for d in entry.diagnoses],
        }
        for entry in diagnoser.get_error_history()
    ])


@app.route('/')
def index():
    """Welcome page."""
    return jsonify({
        'message': '🔍 Welcome to the CORS Diagnoser Demo API',
        'try': "curl -H 'Origin: http://localhost:3000' http://localhost:5000/api/no-cors",
        'endpoints': {
            'GET /api/no-cors': 'Missing Access-Control-Allow-Origin',
            'GET /api/wildcard-credentials': 'Wildcard origin with credentials',
            'GET /api/multiple-origins': 'Multiple origins in one header',
            'OPTIONS /api/preflight': 'Incomplete preflight response',
            'GET /api/wrong-origin': 'Origin mismatch',
            'GET /_cors/history': 'Errors recorded so far',
        }
    })


if __name__ == '__main__':
    print("🔍 CORS Diagnoser Demo API starting...")
    print("⚠️  WARNING: Every /api route has a CORS mistake on purpose!")
    print("📍 Running on http://localhost:5000")
    app.run(debug=True, port=5000)
