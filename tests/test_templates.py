"""
Test suite for Cadence template loading and rendering.
"""

import pytest

from voucher.templates import (
    FLOW_TOKEN_ADDRESS,
    FUNGIBLE_TOKEN_ADDRESS,
    FUSD_ADDRESS,
    TemplateError,
    TemplateNotFoundError,
    TemplateResolver,
)


class TestPackagedTemplates:
    """Tests for the templates shipped with the package."""

    def test_load_create_account(self):
        """Test the account creation script takes the public key."""
        script = TemplateResolver().load("create_account.cdc")

        assert b"transaction(publicKey: String)" in script
        assert b"ECDSA_P256" in script

    def test_render_fusd_transfer(self):
        """Test rendering replaces every contract placeholder."""
        script = TemplateResolver().render(
            "transfer_fusd.cdc.temp",
            {FUNGIBLE_TOKEN_ADDRESS: "9a0766d93b6608b7", FUSD_ADDRESS: "e223d8a629e49c68"},
        )

        assert "import FungibleToken from 0x9a0766d93b6608b7" in script
        assert "import FUSD from 0xe223d8a629e49c68" in script
        assert "transaction(amount: UFix64, to: Address)" in script

    def test_render_flow_transfer(self):
        """Test the FLOW transfer template."""
        script = TemplateResolver().render(
            "transfer_flow.cdc.temp",
            {FUNGIBLE_TOKEN_ADDRESS: "ee82856bf20e2aa6", FLOW_TOKEN_ADDRESS: "0ae53cb6e3f42a79"},
        )

        assert "import FlowToken from 0x0ae53cb6e3f42a79" in script
        assert "/storage/flowTokenVault" in script

    def test_unknown_template(self):
        """Test a missing template name."""
        with pytest.raises(TemplateNotFoundError):
            TemplateResolver().load("does_not_exist.cdc")

    def test_missing_substitution(self):
        """Test an unresolved placeholder is refused."""
        with pytest.raises(TemplateError, match="%FUSD_ADDRESS"):
            TemplateResolver().render(
                "transfer_fusd.cdc.temp", {FUNGIBLE_TOKEN_ADDRESS: "9a0766d93b6608b7"}
            )

    def test_unconfigured_value(self):
        """Test a placeholder mapped to None is refused."""
        with pytest.raises(TemplateError, match="No value configured"):
            TemplateResolver().render(
                "transfer_fusd.cdc.temp",
                {FUNGIBLE_TOKEN_ADDRESS: "9a0766d93b6608b7", FUSD_ADDRESS: None},
            )


class TestTemplateDirectory:
    """Tests for loading templates from a custom directory."""

    def test_custom_directory(self, tmp_path):
        """Test templates are read from the given directory."""
        (tmp_path / "hello.cdc.temp").write_text("import Hello from 0x%HELLO_ADDRESS\n")
        resolver = TemplateResolver(tmp_path)

        assert resolver.render("hello.cdc.temp", {"%HELLO_ADDRESS": "01"}) == "import Hello from 0x01\n"

    def test_longest_placeholder_first(self, tmp_path):
        """Test a placeholder that prefixes another does not clobber it."""
        (tmp_path / "t.cdc.temp").write_text("%TOKEN %TOKEN_ADDRESS")
        resolver = TemplateResolver(tmp_path)

        rendered = resolver.render("t.cdc.temp", {"%TOKEN": "a", "%TOKEN_ADDRESS": "b"})

        assert rendered == "a b"

    def test_custom_directory_missing(self, tmp_path):
        """Test a missing file in the custom directory."""
        with pytest.raises(TemplateNotFoundError):
            TemplateResolver(tmp_path).load("nope.cdc")
