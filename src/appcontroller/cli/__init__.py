import logging
import sys

from typing import List
from typing_extensions import Annotated

import typer.core

typer.core.rich = None

import typer  # noqa: E402

from ..config import Config  # noqa: E402
from ..controllers.service_ingress import DEFAULT_ANNOTATION, DEFAULT_HOST  # noqa: E402
from ..exceptions import FatalError, iterate_errors  # noqa: E402


app = typer.Typer(add_completion=False)


def setup_logging(verbose=False, debug=False):
    logging.basicConfig(
        level=logging.ERROR,
        format='%(levelname)s: %(module)s: %(message)s',
        stream=sys.stderr,
    )
    log = logging.getLogger('appcontroller')
    log_level = logging.ERROR
    if debug:
        log_level = logging.DEBUG
    elif verbose:
        log_level = logging.INFO
    log.setLevel(log_level)
    return log


def _envvar(name):
    return f'APPCONTROLLER_{name}'


@app.command()
def main(
    namespaces: Annotated[
        List[str],
        typer.Option(
            '--namespace',
            '-n',
            envvar=_envvar('NAMESPACE'),
            help='Watch the given namespace instead of all. Can be given multiple times.',
        ),
    ] = None,
    controllers: Annotated[
        List[str],
        typer.Option(
            '--controller',
            '-c',
            envvar=_envvar('CONTROLLER'),
            help='Run only the given controller (app, service-ingress). Can be given multiple times.',
        ),
    ] = None,
    workers: Annotated[
        int,
        typer.Option(envvar=_envvar('WORKERS'), help='Workers of the app controller.'),
    ] = 2,
    ingress_workers: Annotated[
        int,
        typer.Option(envvar=_envvar('INGRESS_WORKERS'), help='Workers of the service-ingress controller.'),
    ] = 5,
    ingress_max_retries: Annotated[
        int,
        typer.Option(envvar=_envvar('INGRESS_MAX_RETRIES'), help='Retries of a failing service before it is dropped.'),
    ] = 10,
    ingress_annotation: Annotated[
        str,
        typer.Option(envvar=_envvar('INGRESS_ANNOTATION'), help='Annotation asking for an ingress.'),
    ] = DEFAULT_ANNOTATION,
    ingress_host: Annotated[
        str,
        typer.Option(envvar=_envvar('INGRESS_HOST'), help='Host of the ingresses created for services.'),
    ] = DEFAULT_HOST,
    update_status: Annotated[
        bool,
        typer.Option(
            '--update-status/--no-update-status',
            envvar=_envvar('UPDATE_STATUS'),
            help='Write the available replicas to the status of Apps.',
        ),
    ] = False,
    resync_after: Annotated[
        float,
        typer.Option(envvar=_envvar('RESYNC_AFTER'), help='Seconds between full relists.'),
    ] = None,
    verbose: Annotated[bool, typer.Option('--verbose', '-v', envvar=_envvar('VERBOSE'))] = False,
    debug: Annotated[bool, typer.Option('--debug', '-d', envvar=_envvar('DEBUG'))] = False,
) -> None:
    """
    Run the App and service-ingress controllers until interrupted.
    """
    log = setup_logging(verbose=verbose, debug=debug)

    kwargs = {}
    if controllers:
        kwargs['controllers'] = controllers
    try:
        config = Config(
            namespaces=namespaces or [],
            app_workers=workers,
            ingress_workers=ingress_workers,
            ingress_max_retries=ingress_max_retries,
            ingress_annotation=ingress_annotation,
            ingress_host=ingress_host,
            update_status=update_status,
            resync_after=resync_after,
            **kwargs,
        )
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    from ..manager import Manager

    failed = False
    try:
        Manager(config).run(debug=debug)
    except* FatalError as eg:
        for error in iterate_errors(eg):
            log.error('%s', error)
        failed = True
    if failed:
        raise typer.Exit(code=1)


if __name__ == '__main__':
    app()
