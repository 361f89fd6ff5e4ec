from dentaldesk import create_app

app = create_app()


if __name__ == "__main__":
    # Para produção, use um servidor WSGI (ex.: gunicorn wsgi:app)
    app.run(debug=app.config.get("DEBUG", False))
