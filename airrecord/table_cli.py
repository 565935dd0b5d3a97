import sys
import json
import logging
import traceback
from requests.exceptions import ConnectionError
from airrecord import __version__ as VERSION, Table, ClientRegistry, RemoteError, AuthenticationError, \
    NotFoundError, AirtablePathError, LogicError, get_credential, read_config, format_exception, eprint, \
    DEFAULT_CONFIG
from airrecord.base_cli import BaseCLI, KeyValuePairArgs


class AirrecordTableCLIException (Exception):
    """Base exception class for AirrecordTableCLI.
    """
    def __init__(self, message):
        """Initializes the exception.
        """
        super(AirrecordTableCLIException, self).__init__(message)


class UsageException (AirrecordTableCLIException):
    """Usage exception.
    """
    def __init__(self, message):
        """Initializes the exception.
        """
        super(UsageException, self).__init__(message)


def _parse_value(value):
    """Interpret a command-line field value as JSON if possible, else as a plain string."""
    try:
        return json.loads(value)
    except ValueError:
        return value


def _parse_sort(value):
    column, _, direction = value.partition(":")
    direction = direction or "asc"
    if direction not in ("asc", "desc"):
        raise UsageException("Invalid sort direction '%s' for column '%s'" % (direction, column))
    return column, direction


def _record_as_dict(record):
    return {
        "id": record.id,
        "createdTime": record.created_at.isoformat() if record.created_at else None,
        "fields": record.fields
    }


class AirrecordTableCLI (BaseCLI):
    """Airrecord Table Command-line Interface.
    """
    def __init__(self, description, epilog):
        """Initializes the CLI.
        """
        super(AirrecordTableCLI, self).__init__(description, epilog, VERSION)

        # initialized after argument parsing
        self.args = None
        self.table = None

        # parent arg parser
        self.parser.add_argument("base", metavar="<base>", help="The base id, e.g. appXXXXXXXXXXXXXX")
        self.parser.add_argument("table_name", metavar="<table>", help="The table name or id.")
        subparsers = self.parser.add_subparsers(title='sub-commands', dest='subcmd')

        # list parser
        list_parser = subparsers.add_parser('list', help="List the records of the table.")
        list_parser.add_argument("--filter", metavar="<formula>", help="Filter formula.")
        list_parser.add_argument("--view", metavar="<view>", help="Name or id of a view.")
        list_parser.add_argument("--sort", metavar="<column[:asc|desc]>", action="append", default=[],
                                 help="Sort by column, may be repeated.")
        list_parser.add_argument("--fields", metavar="<column>", nargs="+", help="Columns to return.")
        list_parser.add_argument("--max-records", metavar="<n>", type=int, help="Maximum number of records.")
        list_parser.add_argument("--page-size", metavar="<n>", type=int, help="Number of records per page.")
        list_parser.add_argument("--no-paginate", action="store_true", help="Only fetch the first page.")
        list_parser.set_defaults(func=self.table_list)

        # get parser
        get_parser = subparsers.add_parser('get', help="Fetch a single record.")
        get_parser.add_argument("id", metavar="<id>", help="Record id.")
        get_parser.set_defaults(func=self.table_get)

        # create parser
        create_parser = subparsers.add_parser('create', help="Create a new record.")
        create_parser.add_argument("fields", metavar="[key=value key=value ...]", nargs='+',
                                   action=KeyValuePairArgs, default={},
                                   help="Field values of the new record. Values are parsed as JSON when possible.")
        create_parser.set_defaults(func=self.table_create)

        # update parser
        update_parser = subparsers.add_parser('update', help="Update fields of an existing record.")
        update_parser.add_argument("id", metavar="<id>", help="Record id.")
        update_parser.add_argument("fields", metavar="[key=value key=value ...]", nargs='+',
                                   action=KeyValuePairArgs, default={},
                                   help="Field values to change. Values are parsed as JSON when possible.")
        update_parser.set_defaults(func=self.table_update)

        # delete parser
        delete_parser = subparsers.add_parser('delete', help="Delete a record.")
        delete_parser.add_argument("id", metavar="<id>", help="Record id.")
        delete_parser.set_defaults(func=self.table_delete)

    def _post_parser_init(self, args):
        """Shared initialization for all sub-commands.
        """
        config = read_config(args.config_file) if args.config_file else DEFAULT_CONFIG
        server = config.get("server", {})
        registry = ClientRegistry(server=server.get("host", DEFAULT_CONFIG["server"]["host"]),
                                  scheme=server.get("protocol", "https"),
                                  api_version=server.get("api_version", DEFAULT_CONFIG["server"]["api_version"]),
                                  session_config=config.get("session"))
        api_key = get_credential(args.api_key, credential_file=args.credential_file)
        if not api_key:
            raise UsageException("No API key found. Use --api-key, the AIRTABLE_API_KEY environment variable "
                                 "or a credential file.")
        self.table = Table(args.base, args.table_name, api_key=api_key, registry=registry)

    @staticmethod
    def _output(data):
        print(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    def table_list(self, args):
        """Implements the table_list sub-command.
        """
        records = self.table.records(filter=args.filter,
                                     sort=[_parse_sort(s) for s in args.sort],
                                     view=args.view,
                                     fields=args.fields,
                                     max_records=args.max_records,
                                     page_size=args.page_size,
                                     paginate=not args.no_paginate)
        self._output([_record_as_dict(record) for record in records])

    def table_get(self, args):
        """Implements the table_get sub-command.
        """
        self._output(_record_as_dict(self.table.find(args.id)))

    def table_create(self, args):
        """Implements the table_create sub-command.
        """
        record = self.table.create({k: _parse_value(v) for k, v in args.fields.items()})
        self._output(_record_as_dict(record))

    def table_update(self, args):
        """Implements the table_update sub-command.
        """
        record = self.table.find(args.id)
        for key, value in args.fields.items():
            record[key] = _parse_value(value)
        record.save()
        self._output(_record_as_dict(record))

    def table_delete(self, args):
        """Implements the table_delete sub-command.
        """
        self.table.find(args.id).destroy()
        if not args.quiet:
            logging.info("Deleted record %s" % args.id)

    def main(self, argv=None):
        """Main routine of the CLI.
        """
        args = self.parse_cli(argv)

        def _resource_error_message(emsg):
            return "{prog} {subcmd}: {table}: {msg}".format(
                prog=self.parser.prog, subcmd=args.subcmd, table=args.table_name, msg=emsg)

        try:
            if not hasattr(args, 'func'):
                self.parser.print_usage()
                return 1

            self._post_parser_init(args)
            args.func(args)
            return 0
        except UsageException as e:
            eprint("{prog} {subcmd}: {msg}".format(prog=self.parser.prog, subcmd=args.subcmd, msg=e))
        except ConnectionError:
            eprint("{prog}: Connection error occurred".format(prog=self.parser.prog))
        except AirtablePathError as e:
            eprint(e)
        except AuthenticationError as e:
            logging.debug(format_exception(e))
            eprint(_resource_error_message('Authentication failed or permission denied'))
        except NotFoundError as e:
            logging.debug(format_exception(e))
            eprint(_resource_error_message('Not found'))
        except (RemoteError, LogicError) as e:
            logging.debug(format_exception(e))
            eprint(_resource_error_message(e))
        except RuntimeError as e:
            logging.warning(format_exception(e))
            eprint('Unexpected runtime error occurred')
        except Exception:
            eprint('Unexpected error occurred')
            traceback.print_exc()
        return 1


def main():
    DESC = "Airrecord Table Utility Command-Line Interface"
    INFO = "Reads and writes the records of an Airtable table."
    return AirrecordTableCLI(DESC, INFO).main()


if __name__ == '__main__':
    sys.exit(main())
