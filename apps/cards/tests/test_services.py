import hashlib
import json
import zipfile
from io import BytesIO

import jwt
import pytest
from unittest.mock import patch

from apps.cards.models import Card, Contact
from apps.cards.services import (
    CardNotFoundError,
    ContactLimitReachedError,
    ContactNotFoundError,
    FREE_PLAN_CONTACT_LIMIT,
    WalletNotConfiguredError,
    build_vcard,
    delete_card,
    delete_contact,
    detect_platform,
    generate_card_qr,
    generate_wallet_pass,
    get_card,
    get_contact,
    get_contact_vcard,
    get_public_card,
    list_cards,
    list_contacts,
    pass_template,
    preview_wallet_pass,
    remaining_contacts,
    save_contact,
    save_contact_url,
    set_card_color,
    update_card,
    update_contact,
)
from apps.cards.tests.conftest import add_card


@pytest.mark.django_db
class TestCardManagement:
    """Tests for card CRUD by index."""

    def test_positions_follow_creation_order(self, owner):
        first = add_card(owner)
        second = add_card(owner, company='Second')

        assert first.position == 0
        assert second.position == 1
        assert get_card(user_id=owner.id, index=1) == second

    def test_default_color_scheme(self, owner):
        assert add_card(owner).color_scheme == '#1B2B5B'

    def test_index_out_of_range(self, owner_cards, owner):
        with pytest.raises(CardNotFoundError):
            get_card(user_id=owner.id, index=2)
        with pytest.raises(CardNotFoundError):
            get_card(user_id=owner.id, index=-1)

    def test_cards_are_per_user(self, owner_cards, premium_owner):
        with pytest.raises(CardNotFoundError):
            get_card(user_id=premium_owner.id, index=0)

    def test_update_ignores_unknown_fields(self, owner_cards, owner):
        card = update_card(user=owner, index=1, data={'company': 'Renamed', 'number_of_scan': 99})

        assert card.company == 'Renamed'
        assert card.number_of_scan == 0

    def test_delete_compacts_positions(self, premium_cards, premium_owner):
        delete_card(user=premium_owner, index=0)

        cards = list(Card.objects.filter(user=premium_owner).order_by('position'))
        assert [card.company for card in cards] == ['Beta', 'Gamma']
        assert [card.position for card in cards] == [0, 1]

        add_card(premium_owner, company='Delta')
        assert get_card(user_id=premium_owner.id, index=2).company == 'Delta'

    def test_delete_out_of_range(self, owner):
        with pytest.raises(CardNotFoundError):
            delete_card(user=owner, index=0)

    def test_set_color(self, owner_cards, owner):
        card = set_card_color(user=owner, index=0, color='#00AA88')

        assert card.color_scheme == '#00AA88'


@pytest.mark.django_db
class TestListCards:
    """Tests for plan-based visibility and analytics."""

    def test_free_plan_sees_first_card(self, owner_cards, owner):
        Card.objects.filter(id=owner_cards[0].id).update(number_of_scan=4)
        Card.objects.filter(id=owner_cards[1].id).update(number_of_scan=10)

        result = list_cards(user=owner)

        assert [card.id for card in result['cards']] == [owner_cards[0].id]
        assert result['analytics'] == {
            'total_scans': 4,
            'cards_visible': 1,
            'cards_total': 2,
            'average_scans_per_card': 4.0,
        }

    def test_premium_sees_all(self, premium_cards, premium_owner):
        Card.objects.filter(id=premium_cards[2].id).update(number_of_scan=5)

        result = list_cards(user=premium_owner)

        assert len(result['cards']) == 3
        assert result['analytics']['total_scans'] == 5
        assert result['analytics']['average_scans_per_card'] == 1.67

    def test_no_cards(self, owner):
        result = list_cards(user=owner)

        assert result['cards'] == []
        assert result['analytics']['average_scans_per_card'] == 0


@pytest.mark.django_db
class TestContactSharing:
    """Tests for the QR code and vCard download."""

    def test_save_contact_url(self, settings, owner):
        settings.PUBLIC_BASE_URL = 'https://xscard.example'

        url = save_contact_url(owner.id, 1)

        assert url == f'https://xscard.example/saveContact?userId={owner.id}&cardIndex=1'

    def test_qr_png(self, owner_cards, owner):
        png = generate_card_qr(user_id=owner.id, index=0)

        assert png.startswith(b'\x89PNG')

    def test_qr_unknown_card(self, owner):
        with pytest.raises(CardNotFoundError):
            generate_card_qr(user_id=owner.id, index=0)

    def test_vcard(self, owner):
        card = add_card(owner, company='Smith, Jones; Partners', socials={'linkedin': 'https://linkedin.com/in/lerato'})

        vcard = build_vcard(card)

        assert vcard.startswith('BEGIN:VCARD\r\nVERSION:3.0\r\n')
        assert 'N:Mokoena;Lerato;;;' in vcard
        assert 'FN:Lerato Mokoena' in vcard
        assert 'ORG:Smith\\, Jones\\; Partners' in vcard
        assert 'TITLE:Product Designer' in vcard
        assert 'TEL;TYPE=CELL:+27825550101' in vcard
        assert 'URL;TYPE=linkedin:https://linkedin.com/in/lerato' in vcard
        assert vcard.endswith('END:VCARD\r\n')

    def test_download_counts_scan(self, owner_cards, owner):
        vcard, filename = get_contact_vcard(user_id=owner.id, index=1)
        get_contact_vcard(user_id=owner.id, index=1)

        assert 'ORG:Side Project' in vcard
        assert filename == 'Lerato_Mokoena.vcf'
        owner_cards[1].refresh_from_db()
        owner_cards[0].refresh_from_db()
        assert owner_cards[1].number_of_scan == 2
        assert owner_cards[0].number_of_scan == 0


@pytest.mark.django_db
class TestContacts:
    """Tests for contacts left on the save-contact page."""

    def test_save_contact(self, owner_cards, owner, mailoutbox, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            contact = save_contact(
                user_id=owner.id,
                index=1,
                name='Kagiso',
                surname='Molefe',
                phone='+27821112222',
                how_we_met='Design Indaba',
            )

        assert contact.owner == owner
        assert contact.card == owner_cards[1]
        assert contact.card_index == 1
        assert contact.email == ''
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == ['owner@example.com']
        assert 'Kagiso Molefe' in mailoutbox[0].body
        assert 'Design Indaba' in mailoutbox[0].body
        assert f'{FREE_PLAN_CONTACT_LIMIT - 1} contacts left' in mailoutbox[0].body

    def test_no_email_before_commit(self, owner_cards, owner, mailoutbox, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            save_contact(user_id=owner.id, index=0, name='Kagiso', phone='+27821112222')

        assert len(callbacks) == 1
        assert mailoutbox == []

    def test_unknown_card(self, owner):
        with pytest.raises(CardNotFoundError):
            save_contact(user_id=owner.id, index=0, name='Kagiso', phone='+27821112222')

    def test_deactivated_owner(self, owner_cards, owner):
        owner.is_active = False
        owner.save()

        with pytest.raises(CardNotFoundError):
            get_public_card(user_id=owner.id, index=0)
        with pytest.raises(CardNotFoundError):
            save_contact(user_id=owner.id, index=0, name='Kagiso', phone='+27821112222')

    def test_free_plan_limit(self, owner_cards, owner):
        Contact.objects.bulk_create([
            Contact(owner=owner, name=f'Visitor {n}', phone='+27820000000')
            for n in range(FREE_PLAN_CONTACT_LIMIT)
        ])

        with pytest.raises(ContactLimitReachedError):
            save_contact(user_id=owner.id, index=0, name='Kagiso', phone='+27821112222')

        assert Contact.objects.filter(owner=owner).count() == FREE_PLAN_CONTACT_LIMIT

    def test_premium_has_no_limit(self, premium_cards, premium_owner):
        Contact.objects.bulk_create([
            Contact(owner=premium_owner, name=f'Visitor {n}', phone='+27820000000')
            for n in range(FREE_PLAN_CONTACT_LIMIT)
        ])

        save_contact(user_id=premium_owner.id, index=0, name='Kagiso', phone='+27821112222')

        assert remaining_contacts(premium_owner) is None

    def test_email_failure_is_logged(self, owner_cards, owner, django_capture_on_commit_callbacks):
        with patch('apps.cards.services.contacts.send_mail', side_effect=OSError('SMTP down')) as send:
            with django_capture_on_commit_callbacks(execute=True):
                contact = save_contact(user_id=owner.id, index=0, name='Kagiso', phone='+27821112222')

        send.assert_called_once()
        assert Contact.objects.filter(id=contact.id).exists()

    def test_owner_crud(self, owner, premium_owner):
        contact = Contact.objects.create(owner=owner, name='Kagiso', phone='+27821112222')

        assert list(list_contacts(user=owner)) == [contact]
        assert list(list_contacts(user=premium_owner)) == []

        updated = update_contact(user=owner, contact_id=contact.id, data={'company': 'Karoo Solar'})
        assert updated.company == 'Karoo Solar'
        assert updated.name == 'Kagiso'

        with pytest.raises(ContactNotFoundError):
            get_contact(user=premium_owner, contact_id=contact.id)

        delete_contact(user=owner, contact_id=contact.id)
        assert not Contact.objects.filter(id=contact.id).exists()


class TestWalletHelpers:

    @pytest.mark.parametrize('user_agent,platform', [
        ('Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)', 'ios'),
        ('Mozilla/5.0 (iPad; CPU OS 16_0 like Mac OS X)', 'ios'),
        ('Mozilla/5.0 (Linux; Android 14; Pixel 8)', 'android'),
        ('Mozilla/5.0 (Windows NT 10.0; Win64; x64)', 'ios'),
        ('', 'ios'),
    ])
    def test_detect_platform(self, user_agent, platform):
        assert detect_platform(user_agent) == platform

    def test_template_by_plan(self):
        card = Card(color_scheme='#FF5733')

        assert pass_template(card, 'free')['background_color'] == '#1B2B5B'
        assert pass_template(card, 'premium')['background_color'] == '#FF5733'
        assert pass_template(card, 'enterprise')['id'] == 'premium'


@pytest.mark.django_db
class TestWalletPasses:
    """Tests for Apple and Google wallet pass generation."""

    def test_signed_pkpass(self, apple_wallet, premium_cards, premium_owner):
        result = generate_wallet_pass(user=premium_owner, index=0, platform='ios')

        assert result['content_type'] == 'application/vnd.apple.pkpass'
        assert result['filename'] == 'Lerato_Mokoena_0.pkpass'
        with zipfile.ZipFile(BytesIO(result['content'])) as bundle:
            names = set(bundle.namelist())
            assert {'pass.json', 'manifest.json', 'signature', 'icon.png'} <= names

            manifest = json.loads(bundle.read('manifest.json'))
            for name, digest in manifest.items():
                assert hashlib.sha1(bundle.read(name)).hexdigest() == digest
            assert 'signature' not in manifest

            pass_json = json.loads(bundle.read('pass.json'))
        assert pass_json['passTypeIdentifier'] == 'pass.com.xscard.test'
        assert pass_json['teamIdentifier'] == 'TEAM123456'
        assert pass_json['backgroundColor'] == 'rgb(255, 87, 51)'
        assert pass_json['barcodes'][0]['message'].endswith(f'userId={premium_owner.id}&cardIndex=0')

    def test_free_plan_gets_basic_colors(self, apple_wallet, owner):
        add_card(owner, color_scheme='#FF5733')

        result = generate_wallet_pass(user=owner, index=0, platform='ios')

        with zipfile.ZipFile(BytesIO(result['content'])) as bundle:
            pass_json = json.loads(bundle.read('pass.json'))
        assert pass_json['backgroundColor'] == 'rgb(27, 43, 91)'

    def test_google_save_url(self, google_wallet, premium_cards, premium_owner):
        result = generate_wallet_pass(user=premium_owner, index=1, platform='android')

        assert result['save_url'].startswith('https://pay.google.com/gp/v/save/')
        token = result['save_url'].rsplit('/', 1)[1]
        claims = jwt.decode(token, google_wallet, algorithms=['RS256'], audience='google')
        assert claims['typ'] == 'savetoandroidpay'
        assert claims['iss'] == 'wallet@xscard-test.iam.gserviceaccount.com'
        generic_object = claims['payload']['genericObjects'][0]
        assert generic_object['id'] == f'3388000000012345678.{premium_owner.id}_1'
        assert generic_object['classId'] == '3388000000012345678.business_card'
        assert generic_object['barcode']['type'] == 'QR_CODE'

    def test_unconfigured(self, wallet_unconfigured, owner_cards, owner):
        with pytest.raises(WalletNotConfiguredError):
            generate_wallet_pass(user=owner, index=0, platform='ios')
        with pytest.raises(WalletNotConfiguredError):
            generate_wallet_pass(user=owner, index=0, platform='android')

    def test_mock_mode(self, wallet_mock_mode, owner_cards, owner):
        ios = generate_wallet_pass(user=owner, index=0, platform='ios')
        android = generate_wallet_pass(user=owner, index=0, platform='android')

        with zipfile.ZipFile(BytesIO(ios['content'])) as bundle:
            assert 'signature' not in bundle.namelist()
        assert ios['mock'] is True
        assert android['mock'] is True
        assert 'save_url' not in android
        assert android['object']['hexBackgroundColor'] == '#1B2B5B'

    def test_unknown_card(self, wallet_mock_mode, owner):
        with pytest.raises(CardNotFoundError):
            generate_wallet_pass(user=owner, index=3, platform='ios')

    def test_preview(self, wallet_unconfigured, premium_cards, premium_owner):
        preview = preview_wallet_pass(user=premium_owner, index=0)

        assert preview['template']['background_color'] == '#FF5733'
        assert preview['platforms'] == {'ios': False, 'android': False}
        assert {'key': 'email', 'label': 'Email', 'value': 'lerato@ubuntulabs.co.za'} in preview['fields']
