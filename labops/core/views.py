import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from .permissions import IsAdminRole
from .serializers import UserSerializer, TechnicianSerializer, TechnicianCreateSerializer

User = get_user_model()
logger = logging.getLogger('labops.core')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with role flags for the frontend"""
    user_data = UserSerializer(request.user).data
    user_data['is_admin'] = request.user.is_admin_role
    user_data['is_technician'] = request.user.is_technician_role
    return Response(user_data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def technician_list_create(request):
    """List active technicians, or create one (admin only)"""
    if request.method == 'GET':
        technicians = User.objects.filter(role=User.ROLE_TECHNICIAN, is_active=True).order_by('name', 'username')
        serializer = TechnicianSerializer(technicians, many=True)
        return Response(serializer.data)

    if not IsAdminRole().has_permission(request, None):
        return Response({'error': IsAdminRole.message}, status=status.HTTP_403_FORBIDDEN)

    serializer = TechnicianCreateSerializer(data=request.data)
    if serializer.is_valid():
        technician = serializer.save()
        logger.info(f"Admin {request.user.username} created technician {technician.username}")
        return Response(TechnicianSerializer(technician).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
