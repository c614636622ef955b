from typing import Any, List, Optional, Type
import argparse
import logging

from .server import WebsocketServer
from .settings import settings_from_env
from .websockets import MessageType

log = logging.getLogger('switchback')

def create_argument(parser: argparse.ArgumentParser, *names: str, type: Type[Any]) -> None:
    parser.add_argument(*names, type=type, required=False, default=None)

def create_arguments() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Switchback echo server')

    create_argument(parser, '--host', type=str)
    create_argument(parser, '--port', '-p', type=int)
    create_argument(parser, '--max-fragments', type=int)
    parser.add_argument('--strict', action='store_true', default=None)
    parser.add_argument('--once', action='store_true', help='stop after the first connection')
    parser.add_argument('--verbose', '-v', action='store_true')

    return parser

def main(argv: Optional[List[str]] = None) -> None:
    args = create_arguments().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    settings = settings_from_env()

    if args.host is not None:
        settings['host'] = args.host

    if args.port is not None:
        settings['port'] = args.port

    if args.max_fragments is not None:
        settings['max_fragments'] = args.max_fragments

    if args.strict is not None:
        settings['strict'] = args.strict

    server = WebsocketServer(settings=settings)

    def echo(type: MessageType, data: Any) -> None:
        log.info(f'[Echo] Received {type.value}: {data!r}')

        if server.session is not None:
            server.session.send(data)

    try:
        with server:
            server.serve(echo, once=args.once)
    except KeyboardInterrupt:
        pass

if __name__ == '__main__':
    main()
