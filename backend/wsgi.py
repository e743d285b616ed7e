from festdesk import create_app

app = create_app()
