from quotehub import create_app
from quotehub.models import db

app = create_app()

with app.app_context():
    db.create_all()

if __name__ == '__main__':
    print("Server: http://127.0.0.1:5002")
    app.run(debug=False, port=5002, host='0.0.0.0', threaded=True)
