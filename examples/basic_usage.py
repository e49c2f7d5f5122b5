"""
Example: Basic usage of the Persons service client
==================================================

Start the service first:

    python -m odata_expand.api

then run this script.
"""

from odata_expand import ODataConfig, ODataSession, ODataUpstreamError, PersonsService
from odata_expand.client import escape_odata_literal


def example_create_and_query():
    """Create a person with dynamic properties and read it back."""

    cfg = ODataConfig(base_url="http://localhost:5050/odata/")

    with ODataSession(cfg) as sess:
        persons = PersonsService(sess)

        # Discover what's available
        print("Entity Sets:", persons.list_entity_sets())
        print("Fields:", persons.list_fields())
        print("Navigations:", persons.list_navigations())

        # Undeclared members end up in Attributes
        created = persons.create({
            "Name": "Ada Lovelace",
            "Age": 36,
            "Title": "Countess",
            "Orders": [{"Product": "Analytical Engine", "Quantity": 1}],
            "Pets": [{"Name": "Rex", "Species": "Dog", "Colour": "Brown"}],
        })
        print("Created:", created["Id"], created["Attributes"])

        # Attributes are always expanded; Orders and Pets bring their own
        items = persons.query(
            fields=["Name", "Age"],
            filter_expr=f"Name eq '{escape_odata_literal('Ada Lovelace')}'",
            expand=["Orders", "Pets"],
            orderby="Age desc",
            top=10,
        )
        for item in items:
            print(item["Name"], item["Attributes"], item["Orders"], item["Pets"])


def example_paging():
    """Follow server-driven paging across the whole set."""

    with ODataSession(ODataConfig(base_url="http://localhost:5050/odata/")) as sess:
        persons = PersonsService(sess)
        print("Total:", persons.count())
        for page in persons.iterate(**{"$orderby": "Name"}):
            print(f"Page with {len(page)} persons")


def example_error_handling():
    """Repeated $expand parameters are rejected by the service."""

    with ODataSession(ODataConfig(base_url="http://localhost:5050/odata/")) as sess:
        try:
            sess.get("Persons?$expand=Orders&$expand=Pets")
        except ODataUpstreamError as e:
            print(e.status, e.body)


if __name__ == "__main__":
    print("Persons service client examples")
    print("=" * 40)
    print("\nMake sure the service is running on localhost:5050\n")

    example_create_and_query()
    example_paging()
    example_error_handling()
