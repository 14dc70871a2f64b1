"""
Import declaration parsing and slot discovery.
"""

from typing import Annotated, Any, Collection, Iterable, Optional, Sequence, Union

import pytest

from exporthub import ImportDeclarationError, ImportShape, Import, imports, make_slot, parse_shape
from exporthub.members import declared_imports, discover_slots


class Service:
    pass


class Other:
    pass


# ============================================================================
# Shapes
# ============================================================================

class TestParseShape:

    @pytest.mark.parametrize("annotation", [
        Service,
        Optional[Service],
        Service | None,
        Annotated[Optional[Service], Import()],
    ])
    def test_scalar(self, annotation):
        assert parse_shape(annotation) == (ImportShape.SCALAR, Service)

    @pytest.mark.parametrize("annotation", [Any, Optional[Any]])
    def test_any_is_object(self, annotation):
        assert parse_shape(annotation) == (ImportShape.SCALAR, object)

    def test_list_is_array(self):
        assert parse_shape(list[Service]) == (ImportShape.ARRAY, Service)

    @pytest.mark.parametrize("annotation", [
        tuple[Service, ...],
        Sequence[Service],
        Collection[Service],
        Iterable[Service],
    ])
    def test_read_only_collections(self, annotation):
        assert parse_shape(annotation) == (ImportShape.COLLECTION, Service)

    @pytest.mark.parametrize("annotation", [
        Union[Service, Other],
        tuple[Service, Other],
        dict[str, Service],
        list,
        tuple,
        list[list[Service]],
        "Service",
    ])
    def test_rejected(self, annotation):
        with pytest.raises(ImportDeclarationError):
            parse_shape(annotation, "Owner", "member")

    def test_error_names_member(self):
        with pytest.raises(ImportDeclarationError) as exc_info:
            parse_shape(dict[str, Service], "Owner", "services")

        error = exc_info.value
        assert error.owner == "Owner"
        assert error.member == "services"
        assert "Owner.services" in str(error)
        assert "Suggested fixes" in str(error)


# ============================================================================
# Discovery
# ============================================================================

class TestDiscovery:

    def test_annotated_attributes(self):
        class Consumer:
            one: Annotated[Optional[Service], Import()]
            many: Annotated[list[Service], Import(key="svc")]
            plain: Optional[Service] = None

        assert declared_imports(Consumer) == (
            ("one", ImportShape.SCALAR, Service, None),
            ("many", ImportShape.ARRAY, Service, "svc"),
        )

    def test_inherited_declarations(self):
        class Base:
            service: Annotated[Optional[Service], Import()]

        class Derived(Base):
            other: Annotated[Optional[Other], Import()]

        names = [name for name, *_ in declared_imports(Derived)]
        assert sorted(names) == ["other", "service"]

    def test_override_without_metadata_drops_method(self):
        class Base:
            @imports(Optional[Service])
            def set_service(self, service):
                pass

        class Derived(Base):
            def set_service(self, service):
                pass

        assert declared_imports(Base)[0][0] == "set_service"
        assert declared_imports(Derived) == ()

    def test_method_must_take_one_argument(self):
        class Consumer:
            @imports(Service)
            def set_both(self, first, second):
                pass

        with pytest.raises(ImportDeclarationError, match="exactly one argument"):
            declared_imports(Consumer)

    def test_method_without_annotation(self):
        class Consumer:
            @imports()
            def set_service(self, service):
                pass

        with pytest.raises(ImportDeclarationError, match="no annotation"):
            declared_imports(Consumer)

    def test_unresolvable_forward_reference(self):
        class Consumer:
            missing: "Annotated[Optional[DoesNotExist], Import()]"

        with pytest.raises(ImportDeclarationError):
            declared_imports(Consumer)

    def test_any_unresolvable_string_annotation_is_reported(self):
        class Consumer:
            note: "SomethingUndefined"

        with pytest.raises(ImportDeclarationError, match="cannot be evaluated"):
            declared_imports(Consumer)

    def test_plain_annotations_without_imports(self):
        class Consumer:
            note: str = ""
            count: int = 0

        assert declared_imports(Consumer) == ()

    def test_any_maps_to_object(self):
        class Consumer:
            config: Annotated[Any, Import(key="cfg")]
            everything: Annotated[list[Any], Import()]

        assert declared_imports(Consumer) == (
            ("config", ImportShape.SCALAR, object, "cfg"),
            ("everything", ImportShape.ARRAY, object, None),
        )

    def test_slot_table_overrides_declaration(self):
        values = []

        class Consumer:
            service: Annotated[Optional[Service], Import()]

            def __import_slots__(self):
                yield make_slot("service", list[Service], values.append)

        slots = discover_slots(Consumer())
        assert slots["service"].shape is ImportShape.ARRAY
        slots["service"].setter([1])
        assert values == [[1]]

    def test_slot_table_must_yield_slots(self):
        class Consumer:
            def __import_slots__(self):
                yield ("service", Service)

        with pytest.raises(ImportDeclarationError):
            discover_slots(Consumer())

    def test_setters_are_bound_per_instance(self):
        class Consumer:
            service: Annotated[Optional[Service], Import()]

        first, second = Consumer(), Consumer()
        discover_slots(first)["service"].setter("a")
        discover_slots(second)["service"].setter("b")

        assert (first.service, second.service) == ("a", "b")


# ============================================================================
# Slots
# ============================================================================

class TestImportSlot:

    def test_pack_and_empty(self):
        scalar = make_slot("s", Optional[Service], lambda v: None)
        array = make_slot("a", list[Service], lambda v: None)
        collection = make_slot("c", tuple[Service, ...], lambda v: None)
        a, b = Service(), Service()

        assert scalar.pack((a, b)) is a
        assert scalar.pack(()) is None
        assert array.pack((a, b)) == [a, b]
        assert collection.pack((a, b)) == (a, b)
        assert (scalar.empty, array.empty, collection.empty) == (None, [], ())

    def test_empty_key_is_unkeyed(self):
        assert make_slot("s", Service, lambda v: None, key="").key is None
        assert Import(key="").key is None
