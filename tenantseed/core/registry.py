"""Registry of named fake-data generators addressable from the rule DSL."""

import logging
from typing import Any, Callable, Dict, Optional
from faker import Faker


logger = logging.getLogger(__name__)

Generator = Callable[[Faker], Any]


DEFAULT_GENERATORS: Dict[str, Generator] = {
    # person
    "person.fullName": lambda f: f.name(),
    "person.firstName": lambda f: f.first_name(),
    "person.lastName": lambda f: f.last_name(),
    "person.prefix": lambda f: f.prefix(),
    "person.suffix": lambda f: f.suffix(),
    "person.jobTitle": lambda f: f.job(),
    # company
    "company.name": lambda f: f.company(),
    "company.catchPhrase": lambda f: f.catch_phrase(),
    "company.buzzPhrase": lambda f: f.bs(),
    "company.suffix": lambda f: f.company_suffix(),
    # internet
    "internet.email": lambda f: f.email(),
    "internet.userName": lambda f: f.user_name(),
    "internet.username": lambda f: f.user_name(),
    "internet.url": lambda f: f.url(),
    "internet.domainName": lambda f: f.domain_name(),
    "internet.ipv4": lambda f: f.ipv4(),
    "internet.ipv6": lambda f: f.ipv6(),
    # phone
    "phone.number": lambda f: f.phone_number(),
    # location
    "location.streetAddress": lambda f: f.street_address(),
    "location.city": lambda f: f.city(),
    "location.state": lambda f: f.state(),
    "location.zipCode": lambda f: f.postcode(),
    "location.country": lambda f: f.country(),
    "location.countryCode": lambda f: f.country_code(),
    # lorem
    "lorem.word": lambda f: f.word(),
    "lorem.words": lambda f: " ".join(f.words()),
    "lorem.sentence": lambda f: f.sentence(),
    "lorem.paragraph": lambda f: f.paragraph(),
    "lorem.text": lambda f: f.text(),
    # misc
    "string.uuid": lambda f: f.uuid4(),
    "datatype.boolean": lambda f: f.pybool(),
    "date.past": lambda f: f.past_date().isoformat(),
    "date.future": lambda f: f.future_date().isoformat(),
    "date.birthdate": lambda f: f.date_of_birth().isoformat(),
    "finance.currencyCode": lambda f: f.currency_code(),
    "finance.iban": lambda f: f.iban(),
    "finance.accountNumber": lambda f: f.bban(),
    "finance.creditCardNumber": lambda f: f.credit_card_number(),
    "color.human": lambda f: f.color_name(),
    "vehicle.vrm": lambda f: f.license_plate(),
}


class GeneratorRegistry:
    """Maps ``category.name`` paths to generator callables taking a Faker instance."""

    def __init__(self, generators: Optional[Dict[str, Generator]] = None):
        self._generators: Dict[str, Generator] = dict(generators or {})

    @classmethod
    def default(cls) -> "GeneratorRegistry":
        """Registry populated with the built-in Faker generators."""
        return cls(DEFAULT_GENERATORS)

    def register(self, path: str, generator: Generator) -> None:
        """Add or replace a generator under ``path``."""
        if not callable(generator):
            raise TypeError(f"Generator for {path} is not callable")
        if path in self._generators:
            logger.debug(f"Replacing generator {path}")
        self._generators[path] = generator

    def resolve(self, path: str) -> Optional[Generator]:
        return self._generators.get(path)

    def __contains__(self, path: str) -> bool:
        return path in self._generators
