from rest_framework import serializers

from .models import Card, Contact, DEFAULT_COLOR_SCHEME

HEX_COLOR = r'^#[0-9A-Fa-f]{6}$'


class CardSerializer(serializers.ModelSerializer):
    """Card as shown to its owner."""

    index = serializers.IntegerField(source='position', read_only=True)

    class Meta:
        model = Card
        fields = [
            'id',
            'index',
            'name',
            'surname',
            'occupation',
            'company',
            'email',
            'phone',
            'socials',
            'color_scheme',
            'profile_image',
            'company_logo',
            'number_of_scan',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class CardAnalyticsSerializer(serializers.Serializer):
    total_scans = serializers.IntegerField()
    cards_visible = serializers.IntegerField()
    cards_total = serializers.IntegerField()
    average_scans_per_card = serializers.FloatField()


class CardListSerializer(serializers.Serializer):
    cards = CardSerializer(many=True)
    analytics = CardAnalyticsSerializer()


class CardCreateSerializer(serializers.Serializer):
    """Input for creating a card. ``title`` is stored as the occupation."""

    name = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    surname = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    title = serializers.CharField(max_length=150)
    company = serializers.CharField(max_length=150)
    email = serializers.EmailField(max_length=255)
    phone = serializers.CharField(max_length=30)
    socials = serializers.DictField(child=serializers.CharField(allow_blank=True), required=False, default=dict)
    color_scheme = serializers.RegexField(HEX_COLOR, required=False, default=DEFAULT_COLOR_SCHEME)
    profile_image = serializers.URLField(max_length=500, required=False, allow_blank=True, default='')
    company_logo = serializers.URLField(max_length=500, required=False, allow_blank=True, default='')

    def to_internal_value(self, data):
        attrs = super().to_internal_value(data)
        if 'title' in attrs:
            attrs['occupation'] = attrs.pop('title')
        return attrs


class CardUpdateSerializer(CardCreateSerializer):
    """Partial input for editing a card."""

    def __init__(self, *args, **kwargs):
        kwargs['partial'] = True
        super().__init__(*args, **kwargs)


class CardColorSerializer(serializers.Serializer):
    color = serializers.RegexField(HEX_COLOR)


class WalletPreviewSerializer(serializers.Serializer):
    mock_mode = serializers.BooleanField()
    plan = serializers.CharField()
    template = serializers.DictField()
    fields = serializers.ListField(child=serializers.DictField())
    barcode = serializers.DictField()
    platforms = serializers.DictField(child=serializers.BooleanField())


class PublicCardSerializer(serializers.ModelSerializer):
    """Card as shown to someone who scanned it."""

    class Meta:
        model = Card
        fields = [
            'name',
            'surname',
            'occupation',
            'company',
            'email',
            'phone',
            'socials',
            'color_scheme',
            'profile_image',
            'company_logo',
        ]
        read_only_fields = fields


class CardAddressSerializer(serializers.Serializer):
    """The ``userId``/``cardIndex`` pair carried by the card QR code link."""

    userId = serializers.UUIDField()
    cardIndex = serializers.IntegerField(min_value=0, required=False, default=0)


class ContactSerializer(serializers.ModelSerializer):
    class Meta:
        model = Contact
        fields = [
            'id',
            'card_index',
            'name',
            'surname',
            'phone',
            'email',
            'company',
            'how_we_met',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ContactCreateSerializer(serializers.Serializer):
    """Details a visitor leaves for the card owner."""

    name = serializers.CharField(max_length=100)
    surname = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    phone = serializers.CharField(max_length=30)
    email = serializers.EmailField(max_length=255, required=False, allow_blank=True, default='')
    company = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    how_we_met = serializers.CharField(required=False, allow_blank=True, default='')


class ContactUpdateSerializer(ContactCreateSerializer):
    """Partial input for editing a contact."""

    def __init__(self, *args, **kwargs):
        kwargs['partial'] = True
        super().__init__(*args, **kwargs)


class SavedContactSerializer(serializers.Serializer):
    message = serializers.CharField()
    contact = ContactSerializer()
    remaining_contacts = serializers.IntegerField(allow_null=True)


class SaveContactPageSerializer(serializers.Serializer):
    user_id = serializers.UUIDField()
    card_index = serializers.IntegerField()
    card = PublicCardSerializer()
    vcard_url = serializers.URLField()
