import socket
import sys

from switchback import ConnectionSession, MessageType, create_server

def serve_forever():
    listener = socket.create_server(('127.0.0.1', 8765))

    while True:
        client, _ = listener.accept()

        with ConnectionSession(client) as websocket: # Auto-closes the connection when done
            for message in websocket: # Receives messages until a close frame is received
                websocket.send(message.data)

# Or, with a handler and the bundled server

def serve_with_handler():
    server = create_server(port=8765)

    def echo(type: MessageType, data) -> None:
        server.session.send(data)

    with server:
        server.serve(echo)

if __name__ == '__main__':
    if '--handler' in sys.argv:
        serve_with_handler()
    else:
        serve_forever()
